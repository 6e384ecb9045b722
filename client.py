import requests
from typing import Optional


class TrainLogClient:
    """Simple REST client for the TrainLog API."""

    def __init__(self, base_url: str = "http://localhost:8000", session=None) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    def _get(self, path: str, **params):
        resp = self.session.get(f"{self.base_url}{path}", params=params)
        resp.raise_for_status()
        return resp.json()

    def _send(self, method: str, path: str, **params):
        resp = self.session.request(method, f"{self.base_url}{path}", params=params)
        resp.raise_for_status()
        return resp.json()

    def health(self) -> dict:
        return self._get("/health")

    def search_exercises(self, query: str, limit: int = 20) -> list:
        return self._get("/exercises/search", query=query, limit=limit)

    def draft(self) -> dict:
        return self._get("/draft")

    def select_date(self, date: str) -> dict:
        return self._send("POST", "/draft/date", date=date)

    def add_exercise(self, name: str, sets: Optional[int] = None) -> dict:
        params = {"name": name}
        if sets is not None:
            params["sets"] = sets
        return self._send("POST", "/draft/exercises", **params)

    def update_set(self, entry_id: str, set_id: str, weight: str, reps: str) -> dict:
        return self._send(
            "PUT",
            f"/draft/exercises/{entry_id}/sets/{set_id}",
            weight=weight,
            reps=reps,
        )

    def save(self) -> dict:
        return self._send("POST", "/draft/save")

    def workout(self, date: str) -> dict:
        return self._get(f"/workouts/{date}")

    def daily_counts(self, start: str, end: str) -> dict:
        return self._get("/stats/daily_counts", start=start, end=end)

    def year_summary(self, year: int) -> dict:
        return self._get(f"/stats/summary/{year}")
