from __future__ import annotations

from typing import Annotated

from pydantic import PlainSerializer

# Native amounts travel as decimal strings so values above 2**53 survive JSON clients.
AmountStr = Annotated[int, PlainSerializer(lambda value: str(int(value)), return_type=str)]
