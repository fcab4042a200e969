"""
Example structured-output schemas.
"""

from pydantic import BaseModel, Field


class Actor(BaseModel):
    """An actor and the films they appeared in."""

    name: str = Field(description="name of an actor")
    film_names: list[str] = Field(description="list of names of films they starred in")
