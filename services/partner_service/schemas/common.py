"""Shared schema types."""

from decimal import Decimal
from typing import Annotated

from pydantic import AliasGenerator, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

# Decimal internally, plain JSON number on the wire.
Money = Annotated[
    Decimal, PlainSerializer(float, return_type=float, when_used="json")
]

# Request bodies accept both ``lead_fee`` and ``leadFee``.
REQUEST_CONFIG = ConfigDict(
    alias_generator=AliasGenerator(validation_alias=to_camel),
    populate_by_name=True,
)
