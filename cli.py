import argparse
import asyncio
import logging

from app import TrainingApp
from tools import WeightConverter


def _weight(app: TrainingApp, kg: float) -> str:
    if app.settings.weight_unit == "lb":
        return f"{WeightConverter.kg_to_lb(kg)} lb"
    return f"{round(kg, 2)} kg"


async def demo_data(app: TrainingApp) -> None:
    """Populate the database with a demo routine and two finished sessions."""
    if await app.sessions.fetch_recent(1):
        print("Database already contains sessions")
        return
    exercises = await app.catalog.fetch_all()
    if len(exercises) < 2:
        print("Exercise catalog is empty")
        return
    first, second = exercises[0], exercises[1]
    routine_id = await app.routines.create(
        "Demo Routine", [(first.id, 3, 8), (second.id, 3, 10)]
    )
    for base in (60.0, 62.5):
        session = await app.engine.start(routine_id)
        for index in range(len(session.sets)):
            app.engine.update_set(index, "weight", str(base))
            app.engine.toggle_complete(index)
        await app.engine.finish("Demo session")
    print("Demo data inserted")


async def list_routines(app: TrainingApp) -> None:
    for routine in await app.routines.fetch_all_routines():
        parts = ", ".join(
            f"{e.exercise_name} {e.target_sets}x{e.target_reps}" for e in routine.exercises
        )
        print(f"{routine.id}: {routine.name} [{parts}]")


async def show_history(app: TrainingApp, limit: int) -> None:
    for entry in await app.history.recent_sessions(limit):
        print(
            f"{entry.id}: {entry.date} {entry.name} - {entry.duration_minutes} min, "
            f"{_weight(app, entry.volume)} volume, {', '.join(entry.exercises)}"
        )


async def show_summary(app: TrainingApp, session_id: int) -> None:
    summary = await app.summaries.summarize(session_id)
    if summary is None:
        print("Session not found")
        return
    print(
        f"{summary.name} ({summary.date}): {summary.duration_minutes} min, "
        f"{summary.total_sets} sets, {_weight(app, summary.total_volume)}, "
        f"{summary.records} records"
    )
    for ex in summary.exercises:
        flags = []
        if ex.is_pr:
            flags.append("PR")
        if ex.improvement:
            flags.append(ex.improvement)
        suffix = f" [{', '.join(flags)}]" if flags else ""
        print(f"  {ex.name}: {ex.sets} sets, best {_weight(app, ex.best_weight)}{suffix}")


async def show_exercise_history(app: TrainingApp, exercise_id: int) -> None:
    name = await app.catalog.fetch_name(exercise_id)
    print(name)
    for entry in await app.history.exercise_history(exercise_id):
        print(
            f"  {entry.session_date} #{entry.session_id} set {entry.set_number}: "
            f"{_weight(app, entry.weight)} x {entry.reps}"
        )


def main() -> None:
    parser = argparse.ArgumentParser(description="Workout session utilities")
    parser.add_argument("--db", default=None)
    parser.add_argument("--yaml", default="settings.yaml")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("demo")
    sub.add_parser("routines")

    hist = sub.add_parser("history")
    hist.add_argument("--limit", type=int, default=None)

    summ = sub.add_parser("summary")
    summ.add_argument("session_id", type=int)

    exh = sub.add_parser("exercise-history")
    exh.add_argument("exercise_id", type=int)

    conv = sub.add_parser("convert")
    conv.add_argument("--weight", type=float, required=True)
    conv.add_argument("--unit", choices=["kg", "lb"], required=True)

    args = parser.parse_args()

    if args.cmd == "convert":
        if args.unit == "kg":
            print(f"{args.weight} kg = {WeightConverter.kg_to_lb(args.weight)} lb")
        else:
            print(f"{args.weight} lb = {WeightConverter.lb_to_kg(args.weight)} kg")
        return

    app = TrainingApp(db_path=args.db, yaml_path=args.yaml)
    logging.basicConfig(
        level=getattr(logging, app.settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "demo":
        asyncio.run(demo_data(app))
    elif args.cmd == "routines":
        asyncio.run(list_routines(app))
    elif args.cmd == "history":
        asyncio.run(show_history(app, args.limit or app.settings.history_limit))
    elif args.cmd == "summary":
        asyncio.run(show_summary(app, args.session_id))
    elif args.cmd == "exercise-history":
        asyncio.run(show_exercise_history(app, args.exercise_id))


if __name__ == "__main__":
    main()
