from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    # wire names are camelCase; Python code uses the field names
    # request models add strict=True: no "5" for an int, no "yes" for a bool
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RecipeBase(CamelModel):
    name: str = Field(..., json_schema_extra={"example": "Simple Pancakes"})
    description: str = Field(
        "", json_schema_extra={"example": "Fluffy breakfast pancakes"}
    )
    image_url: str = Field(
        "",
        alias="url",
        json_schema_extra={"example": "https://example.com/pancakes.jpg"},
    )


class RecipeUpdate(RecipeBase):
    model_config = ConfigDict(strict=True)


class RecipeCreate(RecipeBase):
    model_config = ConfigDict(strict=True)

    long_description: str = ""
    category_id: int = Field(..., json_schema_extra={"example": 1})
    ingredient_ids: List[int] = Field(
        default_factory=list, json_schema_extra={"example": [1, 2]}
    )


class Recipe(RecipeBase):
    id: int
    long_description: str = ""
    category_id: int


class IngredientBase(CamelModel):
    name: str = Field(..., json_schema_extra={"example": "Salt"})
    amount: str = Field("", json_schema_extra={"example": "1 tsp"})
    image_url: str = Field("", alias="url")
    is_available: bool = False


class IngredientCreate(IngredientBase):
    model_config = ConfigDict(strict=True)


class Ingredient(IngredientBase):
    id: int


class RecipeWithIngredients(CamelModel):
    recipe: Recipe
    ingredients: List[Ingredient] = Field(default_factory=list)


class RecipeFilter(BaseModel):
    """Optional GET /recipes body. Anything but a string means no filter."""

    category: Optional[str] = None

    @classmethod
    def from_body(cls, data: dict) -> "RecipeFilter":
        category = data.get("category")
        if not isinstance(category, str):
            category = None
        return cls(category=category)
