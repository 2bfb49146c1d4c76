"""
User record and its JSON binding.

Output uses camelCase (``userName``, ``userAge``). Input property names are
matched case-insensitively, so ``UserName``, ``userName`` and ``username``
all bind. A body that cannot be bound raises ``MalformedUserError``, which
surfaces as a 500 through the error handling stage.
"""

from dataclasses import dataclass
from typing import Any


class MalformedUserError(ValueError):
    """The request body is not a ``{UserName, UserAge}`` object."""


@dataclass
class User:
    user_name: str
    user_age: int

    def to_dict(self) -> dict:
        return {"userName": self.user_name, "userAge": self.user_age}

    @classmethod
    def from_dict(cls, data: Any) -> "User":
        """
        Bind a decoded JSON body.

        Raises:
            MalformedUserError: Not an object, a property is missing, the
                name is not a string, or the age is not an integer.
        """
        if not isinstance(data, dict):
            raise MalformedUserError(
                f"Expected a JSON object, got {type(data).__name__}"
            )

        fields = {str(key).lower(): value for key, value in data.items()}

        try:
            user_name = fields["username"]
            user_age = fields["userage"]
        except KeyError as e:
            raise MalformedUserError(f"Missing property: {e.args[0]}") from None

        if not isinstance(user_name, str):
            raise MalformedUserError("UserName must be a string")

        # bool is an int subclass; true/false is not an age.
        if isinstance(user_age, bool) or not isinstance(user_age, int):
            raise MalformedUserError("UserAge must be an integer")

        return cls(user_name=user_name, user_age=user_age)
