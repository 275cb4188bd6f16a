# flake8: noqa
import sys
from pathlib import Path

# Ensure project root is on sys.path so `src` can be imported when tests are run
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))  # noqa: E402

from contextlib import contextmanager

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import QueuePool
from fastapi.testclient import TestClient  # noqa: E402

from src import app as app_module
from src import crud, models
from src.db import Base, init_db, make_engine
from src.service import RecipeService


# In-memory SQLite on a StaticPool, with foreign keys enforced
engine = make_engine("sqlite:///:memory:")
init_db(engine)
service = RecipeService(engine)

app_module.app.dependency_overrides[app_module.get_service] = lambda: service
client = TestClient(app_module.app)


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


def add_category(name):
    with service.session() as db:
        return crud.create_category(db, name)


@contextmanager
def serving(other):
    """Answer requests from another service for the duration of the block."""
    app_module.app.dependency_overrides[app_module.get_service] = lambda: other
    try:
        yield
    finally:
        app_module.app.dependency_overrides[app_module.get_service] = lambda: service
        other.close()


def add_ingredient(name, amount="1", available=True):
    res = client.post(
        "/ingredient",
        json={"name": name, "amount": amount, "url": "", "isAvailable": available},
    )
    assert res.status_code == 201
    return int(res.text.rsplit(" ", 1)[1])


def test_hello_world():
    res = client.get("/")
    assert res.status_code == 200
    assert res.json() == {"message": "Hello World"}


def test_health_reports_up():
    res = client.get("/health")
    assert res.status_code == 200
    data = res.json()
    assert data["status"] == "up"
    assert data["message"] == "It's healthy"


def test_create_ingredient():
    res = client.post(
        "/ingredient",
        json={"name": "Salt", "amount": "1 tsp", "url": "", "isAvailable": True},
    )
    assert res.status_code == 201
    assert res.text == "Ingredient id: 1"
    assert res.headers["content-type"].startswith("text/plain")

    res = client.get("/ingredients")
    assert res.status_code == 200
    assert res.json() == [
        {"id": 1, "name": "Salt", "amount": "1 tsp", "url": "", "isAvailable": True}
    ]


def test_create_ingredient_missing_name():
    res = client.post("/ingredient", json={"amount": "1 tsp"})
    assert res.status_code == 400
    assert "name" in res.text


def test_create_ingredient_malformed_json():
    res = client.post(
        "/ingredient",
        content="{not json",
        headers={"Content-Type": "application/json"},
    )
    assert res.status_code == 400


def test_create_recipe_and_fetch_with_ingredients():
    category_id = add_category("Breakfast")
    salt = add_ingredient("Salt", "1 tsp")
    flour = add_ingredient("Flour", "200 g")

    payload = {
        "name": "Pancakes",
        "url": "https://example.com/pancakes.jpg",
        "categoryId": category_id,
        "description": "Fluffy",
        "longDescription": "Mix and fry",
        "ingredientIds": [salt, flour],
    }
    res = client.post("/recipe", json=payload)
    assert res.status_code == 201
    assert res.text == "Recipe id: 1"

    res = client.get("/recipe/1")
    assert res.status_code == 200
    data = res.json()
    assert data["recipe"] == {
        "id": 1,
        "name": "Pancakes",
        "description": "Fluffy",
        "url": "https://example.com/pancakes.jpg",
        "longDescription": "Mix and fry",
        "categoryId": category_id,
    }
    assert {i["name"] for i in data["ingredients"]} == {"Salt", "Flour"}
    assert len(data["ingredients"]) == 2


def test_create_recipe_without_ingredients():
    category_id = add_category("Dinner")
    res = client.post("/recipe", json={"name": "Soup", "categoryId": category_id})
    assert res.status_code == 201

    res = client.get("/recipe/1")
    assert res.status_code == 200
    assert res.json()["ingredients"] == []
    assert res.json()["recipe"]["name"] == "Soup"


def test_create_recipe_unknown_category_is_store_error():
    res = client.post("/recipe", json={"name": "Orphan", "categoryId": 42})
    assert res.status_code == 500
    assert client.get("/recipes").json() == []


def test_create_recipe_unknown_ingredient_rolls_back():
    category_id = add_category("Dinner")
    salt = add_ingredient("Salt")
    res = client.post(
        "/recipe",
        json={"name": "Partial", "categoryId": category_id, "ingredientIds": [salt, 999]},
    )
    assert res.status_code == 500
    # neither the recipe nor the valid association survives
    assert client.get("/recipes").json() == []
    assert client.get("/recipe/1").status_code == 404


def test_create_recipe_missing_category_id():
    res = client.post("/recipe", json={"name": "No category"})
    assert res.status_code == 400
    assert "categoryId" in res.text


def test_get_recipe_non_integer_id():
    res = client.get("/recipe/abc")
    assert res.status_code == 400
    assert "abc" in res.text


def test_get_recipe_unknown_id():
    res = client.get("/recipe/12345")
    assert res.status_code == 404
    assert "12345" in res.text


def test_list_recipes_all_and_by_category():
    breakfast = add_category("Breakfast")
    dinner = add_category("Dinner")
    add_category("Dessert")
    client.post("/recipe", json={"name": "Pancakes", "categoryId": breakfast})
    client.post("/recipe", json={"name": "Omelette", "categoryId": breakfast})
    client.post("/recipe", json={"name": "Pasta", "categoryId": dinner})

    res = client.get("/recipes")
    assert res.status_code == 200
    assert [r["name"] for r in res.json()] == ["Pancakes", "Omelette", "Pasta"]

    res = client.request("GET", "/recipes", json={"category": "Breakfast"})
    assert res.status_code == 200
    assert {r["name"] for r in res.json()} == {"Pancakes", "Omelette"}

    res = client.request("GET", "/recipes", json={"category": "Dessert"})
    assert res.status_code == 200
    assert res.json() == []

    res = client.get("/recipes", params={"category": "Dinner"})
    assert [r["name"] for r in res.json()] == ["Pasta"]


def test_list_recipes_ignores_non_string_category():
    breakfast = add_category("Breakfast")
    client.post("/recipe", json={"name": "Pancakes", "categoryId": breakfast})

    for body in ({"category": 7}, {"category": None}, {"other": "x"}):
        res = client.request("GET", "/recipes", json=body)
        assert res.status_code == 200
        assert [r["name"] for r in res.json()] == ["Pancakes"]


def test_list_recipes_bad_body():
    res = client.request("GET", "/recipes", content="{oops")
    assert res.status_code == 400

    res = client.request("GET", "/recipes", json=["Dessert"])
    assert res.status_code == 400
    assert "JSON object" in res.text


def test_update_recipe():
    category_id = add_category("Dinner")
    client.post(
        "/recipe",
        json={"name": "Pasta", "categoryId": category_id, "longDescription": "Boil"},
    )

    res = client.put(
        "/recipe/1",
        json={"name": "Pasta al Pomodoro", "description": "With tomato", "url": "x.jpg"},
    )
    assert res.status_code == 204

    recipe = client.get("/recipe/1").json()["recipe"]
    assert recipe["name"] == "Pasta al Pomodoro"
    assert recipe["description"] == "With tomato"
    assert recipe["url"] == "x.jpg"
    # not part of the update surface
    assert recipe["longDescription"] == "Boil"
    assert recipe["categoryId"] == category_id


def test_update_recipe_unknown_id():
    res = client.put("/recipe/77", json={"name": "Ghost"})
    assert res.status_code == 404


def test_update_recipe_non_integer_id():
    res = client.put("/recipe/x1", json={"name": "Ghost"})
    assert res.status_code == 400


def test_get_recipe_rejects_loose_integer_forms():
    category_id = add_category("Dinner")
    for i in range(1, 11):
        client.post("/recipe", json={"name": f"R{i}", "categoryId": category_id})

    # int() would read these as 10 and 7
    for raw in ("1_0", "%207", "7%20", "%EF%BC%97"):
        res = client.get(f"/recipe/{raw}")
        assert res.status_code == 400, raw
        assert "invalid recipe id" in res.text

        res = client.put(f"/recipe/{raw}", json={"name": "Changed"})
        assert res.status_code == 400, raw

    assert client.get("/recipe/10").json()["recipe"]["name"] == "R10"
    assert client.get("/recipe/+10").json()["recipe"]["name"] == "R10"


def test_create_ingredient_rejects_wrong_json_types():
    res = client.post("/ingredient", json={"name": "Salt", "isAvailable": "yes"})
    assert res.status_code == 400
    assert "isAvailable" in res.text
    assert client.get("/ingredients").json() == []


def test_create_recipe_rejects_string_category_id():
    category_id = add_category("Dinner")
    res = client.post("/recipe", json={"name": "Soup", "categoryId": str(category_id)})
    assert res.status_code == 400
    assert "categoryId" in res.text
    assert client.get("/recipes").json() == []


def test_read_store_error_is_500():
    models.Ingredient.__table__.drop(bind=engine)
    res = client.get("/ingredients")
    assert res.status_code == 500
    assert "ingredient" in res.text


def test_health_endpoint_reports_down_with_200(tmp_path):
    broken = RecipeService(make_engine(f"sqlite:///{tmp_path / 'missing' / 'app.db'}"))
    with serving(broken):
        res = client.get("/health")
    assert res.status_code == 200
    data = res.json()
    assert data["status"] == "down"
    assert data["error"].startswith("db down:")


def pooled_service(path, **pool_args):
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False},
        poolclass=QueuePool,
        **pool_args,
    )
    return RecipeService(engine)


def test_health_endpoint_warns_on_heavy_load(tmp_path):
    busy = pooled_service(tmp_path / "busy.db", pool_size=50)
    held = [busy.engine.connect() for _ in range(41)]
    try:
        with serving(busy):
            data = client.get("/health").json()
    finally:
        for conn in held:
            conn.close()
    assert data["status"] == "up"
    assert data["in_use"] == "41"
    assert data["open_connections"] == "42"
    assert data["message"] == "The database is experiencing heavy load."


def test_health_endpoint_warns_on_overflow(tmp_path):
    small = pooled_service(tmp_path / "small.db", pool_size=1, max_overflow=5)
    held = small.engine.connect()
    try:
        with serving(small):
            data = client.get("/health").json()
    finally:
        held.close()
    assert data["status"] == "up"
    assert data["overflow"] == "1"
    assert "overflow connections" in data["message"]
