from pydantic import Field
from typing import Annotated

# Upper bound of the INTEGER primary key columns.
MAX_ID = 2**31 - 1

PositiveId = Annotated[int, Field(gt=0, le=MAX_ID)]
