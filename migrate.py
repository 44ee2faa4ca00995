import sqlite3
import sys

def migrate(db_path='workout.db'):
    conn = sqlite3.connect(db_path)
    cur = conn.cursor()
    cur.execute("PRAGMA table_info(routines);")
    cols = [r[1] for r in cur.fetchall()]
    if cols and 'program_id' not in cols:
        cur.execute("ALTER TABLE routines ADD COLUMN program_id TEXT;")
    cur.execute("PRAGMA table_info(set_records);")
    cols = [r[1] for r in cur.fetchall()]
    if cols and 'intensity' not in cols:
        cur.execute("ALTER TABLE set_records ADD COLUMN intensity REAL;")
    if cols and 'set_type' not in cols:
        cur.execute("ALTER TABLE set_records ADD COLUMN set_type TEXT NOT NULL DEFAULT 'Normal';")
    cur.execute("PRAGMA table_info(sessions);")
    cols = [r[1] for r in cur.fetchall()]
    if cols and 'status' not in cols:
        cur.execute("ALTER TABLE sessions ADD COLUMN status TEXT NOT NULL DEFAULT 'COMPLETED';")
    conn.commit()
    conn.close()

if __name__ == '__main__':
    path = sys.argv[1] if len(sys.argv) > 1 else 'workout.db'
    migrate(path)
