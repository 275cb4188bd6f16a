import json
import logging
import re
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import schemas
from .config import settings
from .db import init_db
from .errors import RecipeNotFoundError
from .service import RecipeService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One service (and connection pool) for the whole process
    service = RecipeService.from_settings(settings)
    init_db(service.engine)
    app.state.service = service
    try:
        yield
    finally:
        service.close()


app = FastAPI(title="Gastro Galaxy API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_service(request: Request) -> RecipeService:
    return request.app.state.service


# Error bodies are the raw message as plain text


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return PlainTextResponse(
        str(exc.detail), status_code=exc.status_code, headers=exc.headers
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    message = "; ".join(
        "{}: {}".format(".".join(str(part) for part in err["loc"]), err["msg"])
        for err in exc.errors()
    )
    return PlainTextResponse(message, status_code=status.HTTP_400_BAD_REQUEST)


@app.exception_handler(RecipeNotFoundError)
async def not_found_handler(request: Request, exc: RecipeNotFoundError):
    return PlainTextResponse(str(exc), status_code=status.HTTP_404_NOT_FOUND)


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(
        "store error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return PlainTextResponse(
        str(exc), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


RECIPE_ID = re.compile(r"[+-]?[0-9]+")


def _parse_recipe_id(raw: str) -> int:
    # optional sign and ASCII digits, nothing else
    if not RECIPE_ID.fullmatch(raw):
        raise HTTPException(status_code=400, detail=f"invalid recipe id: {raw!r}")
    return int(raw)


@app.get("/")
def hello_world():
    return {"message": "Hello World"}


@app.get("/health")
def health(service: RecipeService = Depends(get_service)):
    return service.health()


@app.get("/recipes", response_model=List[schemas.Recipe])
async def list_recipes(
    request: Request,
    category: Optional[str] = None,
    service: RecipeService = Depends(get_service),
):
    # GET with an optional JSON body; a string "category" in it wins over the query
    body = await request.body()
    if body:
        try:
            data = json.loads(body)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if not isinstance(data, dict):
            raise HTTPException(
                status_code=400, detail="request body must be a JSON object"
            )
        body_filter = schemas.RecipeFilter.from_body(data)
        if body_filter.category is not None:
            category = body_filter.category
    return await run_in_threadpool(service.get_recipes, category or "")


@app.get("/recipe/{recipeId}", response_model=schemas.RecipeWithIngredients)
def get_recipe(recipeId: str, service: RecipeService = Depends(get_service)):
    recipe_id = _parse_recipe_id(recipeId)
    return service.get_recipe_with_ingredients(recipe_id)


@app.post("/recipe", status_code=201, response_class=PlainTextResponse)
def create_recipe(
    recipe: schemas.RecipeCreate, service: RecipeService = Depends(get_service)
):
    recipe_id = service.insert_recipe(recipe)
    return PlainTextResponse(f"Recipe id: {recipe_id}", status_code=201)


@app.put("/recipe/{recipeId}", status_code=204)
def update_recipe(
    recipeId: str,
    recipe: schemas.RecipeUpdate,
    service: RecipeService = Depends(get_service),
):
    recipe_id = _parse_recipe_id(recipeId)
    service.update_recipe(recipe_id, recipe)
    return Response(status_code=204)


@app.post("/ingredient", status_code=201, response_class=PlainTextResponse)
def create_ingredient(
    ingredient: schemas.IngredientCreate,
    service: RecipeService = Depends(get_service),
):
    ingredient_id = service.insert_ingredient(ingredient)
    return PlainTextResponse(f"Ingredient id: {ingredient_id}", status_code=201)


@app.get("/ingredients", response_model=List[schemas.Ingredient])
def list_ingredients(service: RecipeService = Depends(get_service)):
    return service.get_ingredients()
