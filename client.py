import requests
from typing import Optional

class FitTrackClient:
    """Simple REST client for the Fit-Track API."""

    def __init__(self, base_url: str = "http://localhost:3000") -> None:
        self.base_url = base_url.rstrip("/")

    def log_routine(self, date: str, category: str, duration: int, meal: str = "") -> int:
        resp = requests.post(
            f"{self.base_url}/routines",
            params={"date": date, "category": category, "duration": duration, "meal": meal},
        )
        resp.raise_for_status()
        return resp.json()["id"]

    def list_routines(self):
        resp = requests.get(f"{self.base_url}/routines")
        resp.raise_for_status()
        return resp.json()

    def delete_routine(self, routine_id: int) -> None:
        resp = requests.delete(f"{self.base_url}/routines/{routine_id}")
        resp.raise_for_status()

    def add_category(self, name: str) -> int:
        resp = requests.post(f"{self.base_url}/categories", params={"name": name})
        resp.raise_for_status()
        return resp.json()["id"]

    def stats(self, today: Optional[str] = None) -> dict:
        resp = requests.get(f"{self.base_url}/stats", params=_today_params(today))
        resp.raise_for_status()
        return resp.json()

    def progress(self, today: Optional[str] = None) -> dict:
        resp = requests.get(f"{self.base_url}/progress", params=_today_params(today))
        resp.raise_for_status()
        return resp.json()


def _today_params(today: Optional[str]) -> dict:
    return {"today": today} if today else {}
