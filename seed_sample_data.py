import datetime
from db import RoutineRepository, WorkoutCategoryRepository

SAMPLE_CATEGORIES = ["Cardio", "Strength", "Yoga"]

SAMPLE_ROUTINES = [
    (0, "Strength", 45, "Grilled chicken with rice"),
    (1, "Cardio", 30, "Apple and oatmeal"),
    (3, "Strength", 50, "Pizza"),
    (5, "Yoga", 60, "Chicken salad"),
]


def seed(db_path: str = "fittrack.db") -> bool:
    """Insert sample categories and a week of routines into an empty database."""
    routines = RoutineRepository(db_path)
    if routines.fetch_history():
        print("Database already contains routines")
        return False

    categories = WorkoutCategoryRepository(db_path)
    existing = set(categories.fetch_names())
    for name in SAMPLE_CATEGORIES:
        if name not in existing:
            categories.add(name)

    today = datetime.date.today()
    for days_ago, category, minutes, meal in SAMPLE_ROUTINES:
        day = today - datetime.timedelta(days=days_ago)
        routines.create(day.isoformat(), category, minutes, meal)
    print("Seed data inserted")
    return True


if __name__ == "__main__":
    seed()
