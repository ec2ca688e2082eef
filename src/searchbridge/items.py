"""Items and field definitions flowing through the processor pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, model_validator

# Reserved field receiving access grant tokens.
ACCESS_GRANTS_FIELD = "search_api_access_node"

Scalar = Union[str, int, bool, datetime, None]
FieldValue = Union[Scalar, List[Scalar]]


class FieldType(str, Enum):
    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"


class Field(BaseModel):
    """An indexed field declared on an index.

    ``fulltext`` defaults to True for text fields. Fulltext fields are modelled
    as multi-valued by backends, so processors may split them into tokens.
    """

    name: str
    type: FieldType = FieldType.STRING
    fulltext: Optional[bool] = None
    indexed: bool = True

    @model_validator(mode="after")
    def _default_fulltext(self) -> "Field":
        if self.fulltext is None:
            self.fulltext = self.type is FieldType.TEXT
        return self


@dataclass(slots=True)
class Item:
    """One indexable content unit.

    Attributes
    ----------
    id: str
        Opaque identifier, unique within an index.
    fields: dict
        Field name to value or list of values.
    """

    id: str
    fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def access_grants(self) -> List[str]:
        return list(self.fields.get(ACCESS_GRANTS_FIELD) or [])

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)
