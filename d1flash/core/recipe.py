"""External commands run once the target is in boot mode."""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from d1flash.core.exceptions import RecipeFailedError, RecipeSpawnError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recipe:
    """A command plus its arguments."""

    command: str
    arguments: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Accept any sequence from config/CLI but store it immutably.
        object.__setattr__(self, "arguments", tuple(self.arguments))

    @classmethod
    def from_tokens(cls, tokens: Sequence[str]) -> Recipe:
        """Build a recipe from a literal command line split into tokens."""
        if not tokens:
            raise ValueError("A command needs at least one token")
        return cls(command=tokens[0], arguments=tuple(tokens[1:]))

    @property
    def argv(self) -> list[str]:
        return [self.command, *self.arguments]

    def __str__(self) -> str:
        return shlex.join(self.argv)

    def execute(self) -> int:
        """Run the command to completion with inherited stdio.

        Returns:
            The exit status of the child process.

        Raises:
            RecipeSpawnError: If the command could not be started.
        """
        try:
            result = subprocess.run(self.argv, check=False)
        except OSError as exc:
            raise RecipeSpawnError(self.command, exc) from exc
        return result.returncode

    def run(self) -> None:
        """Like execute(), but a non-zero exit status is an error.

        Raises:
            RecipeSpawnError: If the command could not be started.
            RecipeFailedError: If the command exited with a non-zero status.
        """
        returncode = self.execute()
        if returncode != 0:
            raise RecipeFailedError(self.command, returncode)
        logger.debug(f"'{self}' finished successfully")


def select_recipe(
    tokens: Sequence[str],
    recipes: Mapping[str, Recipe],
    default_recipe: str,
) -> Recipe:
    """Pick the recipe to run for the tokens given on the command line.

    - No tokens: the default recipe.
    - A single token naming a recipe: that recipe.
    - Anything else: the tokens are a command followed by its arguments;
      configured recipes are not considered.
    """
    if not tokens:
        return recipes[default_recipe]
    if len(tokens) == 1 and tokens[0] in recipes:
        return recipes[tokens[0]]
    return Recipe.from_tokens(tokens)
