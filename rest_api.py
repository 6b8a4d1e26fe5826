import datetime
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from config import APP_VERSION, load_settings, configure_logging
from db import RoutineRepository, WorkoutCategoryRepository
from exceptions import StoreUnavailable, MalformedRecord, InvalidCategoryName
from progress_service import ProgressService

logger = logging.getLogger(__name__)


def _parse_date(value: str, field: str = "date") -> datetime.date:
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"{field} must be in YYYY-MM-DD format",
        )


class FitTrackAPI:
    """Provides REST endpoints for routine logging and weekly progress."""

    def __init__(
        self,
        db_path: str | None = None,
        yaml_path: str = "settings.yaml",
    ) -> None:
        self.settings = load_settings(yaml_path)
        self.db_path = db_path or self.settings.db_path
        self.routines = RoutineRepository(self.db_path)
        self.categories = WorkoutCategoryRepository(self.db_path)
        self.progress = ProgressService(self.routines)
        self.app = FastAPI(
            title="Fit-Track API",
            description="REST API for daily routine logging and weekly progress",
            version=APP_VERSION,
        )
        self._setup_routes()

    def _routine_params(
        self, date: str, category: str, duration: int, meal: str
    ) -> tuple[str, str, int, str]:
        routine_date = _parse_date(date)
        if routine_date > datetime.date.today():
            raise HTTPException(status_code=400, detail="date cannot be in the future")
        if duration < 0:
            raise HTTPException(status_code=400, detail="duration must be non-negative")
        return routine_date.isoformat(), category, duration, meal

    def _today(self, today: str | None) -> datetime.date | None:
        return None if today is None else _parse_date(today, "today")

    def _setup_routes(self) -> None:
        @self.app.exception_handler(StoreUnavailable)
        async def store_unavailable(request: Request, exc: StoreUnavailable):
            logger.error("%s %s: store unavailable: %s", request.method, request.url.path, exc)
            return JSONResponse(status_code=503, content={"detail": "store unavailable"})

        @self.app.get("/health")
        def health():
            return {"status": "ok", "version": APP_VERSION}

        @self.app.get(
            "/",
            summary="Dashboard",
            description="Category names, routine history and this week's totals.",
        )
        def dashboard(today: str | None = None):
            day = self._today(today)
            return {
                "categories": self.categories.fetch_names(),
                "history": [
                    r.model_dump(mode="json") for r in self.routines.fetch_history()
                ],
                "stats": self.progress.dashboard_stats(day).model_dump(),
            }

        @self.app.post("/routines")
        def create_routine(
            date: str | None = None,
            category: str = "",
            duration: int = 0,
            meal: str = "",
        ):
            params = self._routine_params(
                date or datetime.date.today().isoformat(), category, duration, meal
            )
            rid = self.routines.create(*params)
            return {"id": rid}

        @self.app.get(
            "/routines",
            summary="List routines",
            description="Logged routines, newest first.",
        )
        def list_routines():
            return [r.model_dump(mode="json") for r in self.routines.fetch_history()]

        @self.app.get("/routines/{routine_id}")
        def get_routine(routine_id: int):
            try:
                return self.routines.fetch_detail(routine_id).model_dump(mode="json")
            except MalformedRecord as e:
                raise HTTPException(status_code=422, detail=str(e))
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @self.app.put("/routines/{routine_id}")
        def update_routine(
            routine_id: int,
            date: str,
            category: str = "",
            duration: int = 0,
            meal: str = "",
        ):
            params = self._routine_params(date, category, duration, meal)
            try:
                self.routines.update(routine_id, *params)
                return {"status": "updated"}
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @self.app.delete("/routines/{routine_id}")
        def delete_routine(routine_id: int):
            try:
                self.routines.delete(routine_id)
                return {"status": "deleted"}
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @self.app.get("/categories")
        def list_categories():
            return [c.model_dump() for c in self.categories.fetch_all()]

        @self.app.post("/categories")
        def add_category(name: str):
            try:
                cid = self.categories.add(name)
            except InvalidCategoryName as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": cid}

        @self.app.put("/categories/{category_id}")
        def update_category(category_id: int, name: str):
            try:
                self.categories.update(category_id, name)
                return {"status": "updated"}
            except InvalidCategoryName as e:
                raise HTTPException(status_code=400, detail=str(e))
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @self.app.delete("/categories/{category_id}")
        def delete_category(category_id: int):
            try:
                self.categories.delete(category_id)
                return {"status": "deleted"}
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @self.app.get(
            "/stats",
            summary="Weekly statistics",
            description="Workouts, minutes and most trained category over the last 7 days.",
        )
        def stats(today: str | None = None):
            return self.progress.dashboard_stats(self._today(today)).model_dump()

        @self.app.get(
            "/progress",
            summary="Weekly progress report",
            description="Score, level, nutrition verdict and consistency over the last 7 days.",
        )
        def progress(today: str | None = None):
            day = self._today(today)
            return {
                "stats": self.progress.dashboard_stats(day).model_dump(),
                "progress": self.progress.progress_report(day).model_dump(),
            }


api = FitTrackAPI()
app = api.app

if __name__ == "__main__":
    import uvicorn

    configure_logging(api.settings.log_level)
    uvicorn.run(app, host=api.settings.host, port=api.settings.port)
