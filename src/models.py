from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Table, Text

from .db import Base


# no uniqueness constraint: the same pair may be linked more than once
ingredient_recipe = Table(
    "ingredient_recipe",
    Base.metadata,
    Column("ingredient_id", Integer, ForeignKey("ingredient.id"), nullable=False),
    Column("recipe_id", Integer, ForeignKey("recipe.id"), nullable=False),
)


class Category(Base):
    __tablename__ = "category"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)


class Recipe(Base):
    __tablename__ = "recipe"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    long_description = Column(Text, nullable=False, default="")
    imageurl = Column(String(500), nullable=False, default="")
    category_id = Column(Integer, ForeignKey("category.id"), nullable=False)


class Ingredient(Base):
    __tablename__ = "ingredient"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    amount = Column(String(100), nullable=False, default="")  # free-form, e.g. "1 tsp"
    imageurl = Column(String(500), nullable=False, default="")
    isavailable = Column(Boolean, nullable=False, default=False)
