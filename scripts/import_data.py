import json
import logging
import sys
from pathlib import Path

from src import crud, schemas
from src.config import settings
from src.db import init_db
from src.service import RecipeService


def load_seed(service: RecipeService, data: dict) -> dict:
    """Insert categories, ingredients and recipes from a seed document.

    Recipes name their category and ingredients; names are resolved to the
    ids generated on insert. Rows whose name already exists are skipped.
    Returns how many rows of each kind were added.
    """
    added = {"categories": 0, "ingredients": 0, "recipes": 0}
    categories = {}
    ingredients = {}
    existing_recipes = set()
    with service.session() as db:
        for name in data.get('categories', []):
            existing = crud.get_category_by_name(db, name)
            if existing:
                categories[name] = existing.id
                continue
            categories[name] = crud.create_category(db, name)
            added["categories"] += 1
        for item in data.get('ingredients', []):
            existing = crud.get_ingredient_by_name(db, item['name'])
            if existing:
                ingredients[existing.name] = existing.id
        for item in data.get('recipes', []):
            if crud.get_recipe_by_name(db, item['name']):
                existing_recipes.add(item['name'])

    for item in data.get('ingredients', []):
        if item['name'] in ingredients:
            continue
        ingredient = schemas.IngredientCreate(**item)
        ingredients[ingredient.name] = service.insert_ingredient(ingredient)
        added["ingredients"] += 1

    for item in data.get('recipes', []):
        if item['name'] in existing_recipes:
            continue
        category = item.get('category')
        if category not in categories:
            print(f"skipping {item['name']!r}: unknown category {category!r}")
            continue
        recipe = schemas.RecipeCreate(
            name=item['name'],
            description=item.get('description', ''),
            long_description=item.get('longDescription', ''),
            image_url=item.get('url', ''),
            category_id=categories[category],
            ingredient_ids=[ingredients[n] for n in item.get('ingredients', []) if n in ingredients],
        )
        service.insert_recipe(recipe)
        added["recipes"] += 1
    return added


def main():
    logging.basicConfig(level=logging.INFO)
    p = Path(sys.argv[1]) if len(sys.argv) > 1 else Path(__file__).resolve().parents[1] / 'data' / 'seed.json'
    if not p.exists():
        print(f'{p} not found')
        return
    data = json.loads(p.read_text(encoding='utf-8'))
    service = RecipeService.from_settings(settings)
    try:
        init_db(service.engine)
        added = load_seed(service, data)
    finally:
        service.close()
    print(
        f"Imported {added['categories']} categories, "
        f"{added['ingredients']} ingredients, {added['recipes']} recipes"
    )


if __name__ == '__main__':
    main()
