from typing import Any, Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel, to_snake


class JsonModel(BaseModel):
    """Wire model: camelCase on the outside, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_dict(
        self,
        by_alias: bool | None = None,
        exclude: set[str] | None = None,
        mode: Literal["json", "python"] = "python",
        exclude_none: bool = True,
    ) -> dict[str, Any]:
        return self.model_dump(
            exclude_none=exclude_none,
            by_alias=by_alias or (mode == "json"),
            exclude=exclude,
            mode=mode,
        )


class JsonSnakeCaseModel(JsonModel):
    model_config = ConfigDict(alias_generator=to_snake, populate_by_name=True, extra="ignore")

