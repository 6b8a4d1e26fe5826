import os
import sys
import datetime
import sqlite3
import tempfile
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import RoutineRepository, WorkoutCategoryRepository
from exceptions import StoreUnavailable, MalformedRecord, InvalidCategoryName
from models import RoutineRecord, DashboardStats, NO_CATEGORY
from progress_service import ProgressService


class RoutineRepositoryTest(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.tmp.name, "fittrack.db")
        self.repo = RoutineRepository(self.db_path)
        self.today = datetime.date(2024, 5, 15)
        self.start = self.today - datetime.timedelta(days=6)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def _log(self, days_ago: int, category: str, minutes: int, meal: str = "") -> int:
        day = self.today - datetime.timedelta(days=days_ago)
        return self.repo.create(day.isoformat(), category, minutes, meal)

    def test_create_update_delete(self) -> None:
        rid = self._log(0, "Run", 30, "apple")
        self.assertEqual(rid, 1)
        detail = self.repo.fetch_detail(rid)
        self.assertEqual(detail.date, self.today)
        self.assertEqual(detail.category, "Run")
        self.assertEqual(detail.duration, 30)
        self.assertEqual(detail.meal, "apple")

        self.repo.update(rid, "2024-05-14", "Swim", 45, "rice")
        detail = self.repo.fetch_detail(rid)
        self.assertEqual(detail.date, datetime.date(2024, 5, 14))
        self.assertEqual(detail.category, "Swim")
        self.assertEqual(detail.duration, 45)

        self.repo.delete(rid)
        self.assertEqual(self.repo.fetch_history(), [])
        with self.assertRaises(ValueError):
            self.repo.delete(rid)
        with self.assertRaises(ValueError):
            self.repo.update(rid, "2024-05-14", "Swim", 45, "rice")
        with self.assertRaises(ValueError):
            self.repo.fetch_detail(rid)

    def test_history_is_newest_first(self) -> None:
        self._log(3, "Run", 30)
        self._log(0, "Lift", 40)
        self._log(1, "Yoga", 20)
        history = self.repo.fetch_history()
        self.assertEqual([r.category for r in history], ["Lift", "Yoga", "Run"])

    def test_window_boundaries(self) -> None:
        self._log(0, "Run", 10, "a")
        self._log(6, "Run", 20, "b")
        self._log(7, "Run", 40, "c")
        self._log(-1, "Run", 80, "d")
        self.assertEqual(self.repo.count_in_window(self.start, self.today), 2)
        self.assertEqual(self.repo.sum_duration_in_window(self.start, self.today), 30)
        self.assertEqual(self.repo.meals_in_window(self.start, self.today), ["a", "b"])

    def test_window_accepts_iso_strings(self) -> None:
        self._log(2, "Run", 25)
        self.assertEqual(
            self.repo.count_in_window(self.start.isoformat(), self.today.isoformat()), 1
        )

    def test_empty_window(self) -> None:
        self._log(10, "Run", 25)
        self.assertEqual(self.repo.count_in_window(self.start, self.today), 0)
        self.assertEqual(self.repo.sum_duration_in_window(self.start, self.today), 0)
        self.assertEqual(
            self.repo.most_frequent_category_in_window(self.start, self.today), "None"
        )
        self.assertEqual(self.repo.meals_in_window(self.start, self.today), [])
        self.assertEqual(
            ProgressService(self.repo).dashboard_stats(self.today), DashboardStats()
        )
        self.assertEqual(DashboardStats().most_trained, NO_CATEGORY)

    def test_most_frequent_category(self) -> None:
        self._log(1, "Lift", 30)
        self._log(2, "Run", 30)
        self._log(3, "Run", 30)
        self._log(9, "Lift", 30)
        self._log(9, "Lift", 30)
        self.assertEqual(
            self.repo.most_frequent_category_in_window(self.start, self.today), "Run"
        )

    def test_most_frequent_tie_goes_to_first_logged(self) -> None:
        self._log(1, "Yoga", 30)
        self._log(2, "Lift", 30)
        self._log(3, "Lift", 30)
        self._log(4, "Yoga", 30)
        self.assertEqual(
            self.repo.most_frequent_category_in_window(self.start, self.today), "Yoga"
        )

    def test_empty_category_name_reads_as_none(self) -> None:
        self._log(1, "", 30)
        self.assertEqual(
            self.repo.most_frequent_category_in_window(self.start, self.today), "None"
        )

    def test_timestamps_count_by_calendar_day(self) -> None:
        self.repo.create(f"{self.start.isoformat()} 07:30:00", "Run", 30, "")
        self.assertEqual(self.repo.count_in_window(self.start, self.today), 1)

    def test_malformed_rows_are_skipped(self) -> None:
        self._log(1, "Run", 30, "rice")
        bad_date = self.repo.create("yesterday", "Run", 30, "rice")
        negative = self._log(1, "Run", -15, "rice")
        text_duration = self._log(1, "Run", "half an hour", "rice")

        self.assertEqual(self.repo.count_in_window(self.start, self.today), 1)
        self.assertEqual(self.repo.sum_duration_in_window(self.start, self.today), 30)
        self.assertEqual(self.repo.meals_in_window(self.start, self.today), ["rice"])
        self.assertEqual(len(self.repo.fetch_history()), 1)

        skipped = self.repo.malformed_records()
        self.assertEqual(
            [e.record_id for e in skipped], [bad_date, negative, text_duration]
        )
        self.assertTrue(all(isinstance(e, MalformedRecord) for e in skipped))
        with self.assertRaises(MalformedRecord):
            self.repo.fetch_detail(negative)

        service = ProgressService(self.repo)
        self.assertEqual(len(service.skipped_records()), 3)
        self.assertEqual(service.dashboard_stats(self.today).total_workouts, 1)

    def test_impossible_calendar_date_is_malformed(self) -> None:
        today = datetime.date(2024, 3, 1)
        start = today - datetime.timedelta(days=6)
        good = self.repo.create("2024-02-28", "Run", 20, "apple")
        bad = self.repo.create("2024-02-30", "Run", 30, "rice")

        self.assertEqual(self.repo.count_in_window(start, today), 1)
        self.assertEqual(self.repo.sum_duration_in_window(start, today), 20)
        self.assertEqual(self.repo.meals_in_window(start, today), ["apple"])
        self.assertEqual([r.id for r in self.repo.fetch_history()], [good])
        self.assertEqual([e.record_id for e in self.repo.malformed_records()], [bad])
        with self.assertRaises(MalformedRecord):
            self.repo.fetch_detail(bad)

    def test_offset_timestamp_counts_on_written_day(self) -> None:
        rid = self.repo.create("2024-05-15T23:00:00-05:00", "Run", 30, "")
        self.assertEqual(self.repo.fetch_detail(rid).date, self.today)
        self.assertEqual(self.repo.count_in_window(self.today, self.today), 1)
        tomorrow = self.today + datetime.timedelta(days=1)
        self.assertEqual(self.repo.count_in_window(tomorrow, tomorrow), 0)
        self.assertEqual(self.repo.malformed_records(), [])

    def test_row_with_invalid_day_raises_malformed(self) -> None:
        with self.assertRaises(MalformedRecord) as ctx:
            RoutineRecord.from_row((7, "2024-02-30", "Run", 30, ""))
        self.assertEqual(ctx.exception.record_id, 7)

    def test_query_failure_raises_store_unavailable(self) -> None:
        self._log(1, "Run", 30)
        self.repo.execute("DROP TABLE daily_routine;")
        with self.assertRaises(StoreUnavailable):
            self.repo.count_in_window(self.start, self.today)
        service = ProgressService(self.repo)
        with self.assertRaises(StoreUnavailable):
            service.progress_report(self.today)

    def test_unreachable_database_raises_store_unavailable(self) -> None:
        self.repo._db_path = self.tmp.name
        with self.assertRaises(StoreUnavailable):
            self.repo.sum_duration_in_window(self.start, self.today)

    def test_existing_database_is_migrated(self) -> None:
        path = os.path.join(self.tmp.name, "legacy.db")
        conn = sqlite3.connect(path)
        conn.execute(
            "CREATE TABLE daily_routine (id INTEGER PRIMARY KEY AUTOINCREMENT, workout_date TEXT, category TEXT);"
        )
        conn.execute(
            "INSERT INTO daily_routine (workout_date, category) VALUES ('2024-05-14', 'Run');"
        )
        conn.commit()
        conn.close()
        repo = RoutineRepository(path)
        record = repo.fetch_detail(1)
        self.assertEqual(record.category, "Run")
        self.assertEqual(record.duration, 0)
        self.assertEqual(record.meal, "")


class WorkoutCategoryRepositoryTest(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.tmp.name, "fittrack.db")
        self.repo = WorkoutCategoryRepository(self.db_path)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_add_rename_delete(self) -> None:
        cid = self.repo.add("Cardio")
        self.repo.add("Strength")
        self.assertEqual(self.repo.fetch_names(), ["Cardio", "Strength"])
        self.repo.update(cid, "Running")
        self.assertEqual(self.repo.fetch_all()[0].name, "Running")
        self.repo.update(cid, "Running")
        self.repo.delete(cid)
        self.assertEqual(self.repo.fetch_names(), ["Strength"])
        with self.assertRaises(ValueError):
            self.repo.delete(cid)
        with self.assertRaises(ValueError):
            self.repo.update(cid, "Yoga")

    def test_names_are_unique_and_non_empty(self) -> None:
        cid = self.repo.add("Cardio")
        other = self.repo.add("Yoga")
        with self.assertRaises(InvalidCategoryName):
            self.repo.add("Cardio")
        with self.assertRaises(InvalidCategoryName):
            self.repo.add("  ")
        with self.assertRaises(InvalidCategoryName):
            self.repo.update(other, "Cardio")
        self.assertEqual(self.repo.fetch_names(), ["Cardio", "Yoga"])
        self.assertEqual(cid, 1)

    def test_deleting_category_keeps_routines(self) -> None:
        routines = RoutineRepository(self.db_path)
        cid = self.repo.add("Cardio")
        routines.create("2024-05-14", "Cardio", 30, "")
        self.repo.delete(cid)
        self.assertEqual(routines.fetch_history()[0].category, "Cardio")


if __name__ == "__main__":
    unittest.main()
