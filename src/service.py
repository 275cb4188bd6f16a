"""Data access service.

Owns the engine (and with it the connection pool) for the lifetime of the
process. Handlers receive one instance through the ``get_service``
dependency; every public method opens its own session and transaction.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.pool import QueuePool

from . import crud, schemas
from .config import Settings
from .db import make_engine, make_sessionmaker

logger = logging.getLogger(__name__)

HEALTH_TIMEOUT = 1.0
HEAVY_LOAD_CONNECTIONS = 40


class RecipeService:
    def __init__(self, engine: Engine):
        self.engine = engine
        self._sessions = make_sessionmaker(engine)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RecipeService":
        return cls(make_engine(settings.database_url))

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session inside a transaction; commit on success, roll back on error."""
        with self._sessions() as db, db.begin():
            yield db

    def _ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def health(self, timeout: float = HEALTH_TIMEOUT) -> Dict[str, str]:
        """Ping the store and report pool statistics.

        A failed or slow ping is reported as ``status: down``; it is never
        raised, so callers decide what an unhealthy store means to them.
        """
        stats: Dict[str, str] = {}
        try:
            self._ping_within(timeout)
        except (TimeoutError, SQLAlchemyError) as exc:
            return self._down(stats, str(exc))

        stats["status"] = "up"
        stats["message"] = "It's healthy"

        pool = self.engine.pool
        if isinstance(pool, QueuePool):
            in_use = pool.checkedout()
            idle = pool.checkedin()
            overflow = max(pool.overflow(), 0)
            stats["open_connections"] = str(in_use + idle)
            stats["in_use"] = str(in_use)
            stats["idle"] = str(idle)
            stats["overflow"] = str(overflow)
            stats["pool_size"] = str(pool.size())

            if in_use + idle > HEAVY_LOAD_CONNECTIONS:
                stats["message"] = "The database is experiencing heavy load."
            if overflow > 0:
                stats["message"] = (
                    "The pool is handing out overflow connections, "
                    "consider raising the pool size."
                )
        return stats

    def _ping_within(self, timeout: float) -> None:
        """Run one ping on its own thread and wait for it at most ``timeout``.

        Raises ``TimeoutError`` when the ping is still running at the
        deadline; the thread is left to finish on its own.
        """
        outcome = {}

        def run():
            try:
                self._ping()
            except Exception as exc:
                outcome["error"] = exc

        worker = threading.Thread(target=run, name="db-ping", daemon=True)
        worker.start()
        worker.join(timeout)
        if worker.is_alive():
            raise TimeoutError(f"ping timed out after {timeout}s")
        if "error" in outcome:
            raise outcome["error"]

    @staticmethod
    def _down(stats: Dict[str, str], reason: str) -> Dict[str, str]:
        logger.error("db down: %s", reason)
        stats["status"] = "down"
        stats["error"] = f"db down: {reason}"
        return stats

    def insert_recipe(self, recipe: schemas.RecipeCreate) -> int:
        with self.session() as db:
            return crud.create_recipe(db, recipe)

    def update_recipe(self, recipe_id: int, recipe: schemas.RecipeUpdate) -> None:
        with self.session() as db:
            crud.update_recipe(db, recipe_id, recipe)

    def insert_recipe_ingredient(self, recipe_id: int, ingredient_ids: List[int]) -> None:
        with self.session() as db:
            crud.add_recipe_ingredients(db, recipe_id, ingredient_ids)

    def get_recipes(self, category: str = "") -> List[schemas.Recipe]:
        with self.session() as db:
            return crud.get_recipes(db, category)

    def get_recipe_with_ingredients(self, recipe_id: int) -> schemas.RecipeWithIngredients:
        with self.session() as db:
            return crud.get_recipe_with_ingredients(db, recipe_id)

    def insert_ingredient(self, ingredient: schemas.IngredientCreate) -> int:
        with self.session() as db:
            return crud.create_ingredient(db, ingredient)

    def get_ingredients(self) -> List[schemas.Ingredient]:
        with self.session() as db:
            return crud.get_ingredients(db)

    def close(self) -> None:
        logger.info("Disconnected from database: %s", self.engine.url.database)
        self.engine.dispose()
