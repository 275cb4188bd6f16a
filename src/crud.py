import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from . import models, schemas
from .errors import RecipeNotFoundError

logger = logging.getLogger(__name__)


def _to_recipe(r: models.Recipe) -> schemas.Recipe:
    return schemas.Recipe(
        id=r.id,
        name=r.name,
        description=r.description,
        long_description=r.long_description,
        image_url=r.imageurl,
        category_id=r.category_id,
    )


def _to_ingredient(i: models.Ingredient) -> schemas.Ingredient:
    return schemas.Ingredient(
        id=i.id,
        name=i.name,
        amount=i.amount,
        image_url=i.imageurl,
        is_available=i.isavailable,
    )


def get_recipe(db: Session, recipe_id: int) -> Optional[models.Recipe]:
    return db.query(models.Recipe).filter(models.Recipe.id == recipe_id).first()


def get_recipe_by_name(db: Session, name: str) -> Optional[models.Recipe]:
    return db.query(models.Recipe).filter(models.Recipe.name == name).first()


def get_recipes(db: Session, category: str = "") -> List[schemas.Recipe]:
    query = db.query(models.Recipe)
    if category:
        query = query.join(
            models.Category, models.Recipe.category_id == models.Category.id
        ).filter(models.Category.name == category)
    return [_to_recipe(r) for r in query.order_by(models.Recipe.id).all()]


def get_recipe_with_ingredients(
    db: Session, recipe_id: int
) -> schemas.RecipeWithIngredients:
    logger.info("Getting recipe %d with ingredients", recipe_id)
    r = get_recipe(db, recipe_id)
    if r is None:
        raise RecipeNotFoundError(recipe_id)
    link = models.ingredient_recipe
    ingredients = (
        db.query(models.Ingredient)
        .join(link, models.Ingredient.id == link.c.ingredient_id)
        .filter(link.c.recipe_id == recipe_id)
        .all()
    )
    return schemas.RecipeWithIngredients(
        recipe=_to_recipe(r),
        ingredients=[_to_ingredient(i) for i in ingredients],
    )


def create_recipe(db: Session, recipe: schemas.RecipeCreate) -> int:
    logger.info("Inserting new recipe %r", recipe.name)
    db_recipe = models.Recipe(
        name=recipe.name,
        description=recipe.description,
        long_description=recipe.long_description,
        imageurl=recipe.image_url,
        category_id=recipe.category_id,
    )
    db.add(db_recipe)
    # flush to obtain the generated id before linking ingredients
    db.flush()
    add_recipe_ingredients(db, db_recipe.id, recipe.ingredient_ids)
    return db_recipe.id


def add_recipe_ingredients(
    db: Session, recipe_id: int, ingredient_ids: List[int]
) -> None:
    if not ingredient_ids:
        return
    db.execute(
        models.ingredient_recipe.insert(),
        [{"ingredient_id": i, "recipe_id": recipe_id} for i in ingredient_ids],
    )


def update_recipe(db: Session, recipe_id: int, recipe: schemas.RecipeUpdate) -> None:
    matched = (
        db.query(models.Recipe)
        .filter(models.Recipe.id == recipe_id)
        .update(
            {
                models.Recipe.name: recipe.name,
                models.Recipe.description: recipe.description,
                models.Recipe.imageurl: recipe.image_url,
            },
            synchronize_session=False,
        )
    )
    if matched == 0:
        raise RecipeNotFoundError(recipe_id)


def create_ingredient(db: Session, ingredient: schemas.IngredientCreate) -> int:
    logger.info("Inserting new ingredient %r", ingredient.name)
    db_ingredient = models.Ingredient(
        name=ingredient.name,
        amount=ingredient.amount,
        imageurl=ingredient.image_url,
        isavailable=ingredient.is_available,
    )
    db.add(db_ingredient)
    db.flush()
    return db_ingredient.id


def get_ingredients(db: Session) -> List[schemas.Ingredient]:
    rows = db.query(models.Ingredient).order_by(models.Ingredient.id).all()
    return [_to_ingredient(i) for i in rows]


def get_ingredient_by_name(db: Session, name: str) -> Optional[models.Ingredient]:
    return db.query(models.Ingredient).filter(models.Ingredient.name == name).first()


def get_category_by_name(db: Session, name: str) -> Optional[models.Category]:
    return db.query(models.Category).filter(models.Category.name == name).first()


def create_category(db: Session, name: str) -> int:
    db_category = models.Category(name=name)
    db.add(db_category)
    db.flush()
    return db_category.id
