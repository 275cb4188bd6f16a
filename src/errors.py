class RecipeServiceError(Exception):
    pass


class RecipeNotFoundError(RecipeServiceError):
    def __init__(self, recipe_id: int):
        super().__init__(f"Recipe not found: {recipe_id}")
        self.recipe_id = recipe_id
