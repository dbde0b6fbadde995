"""API dependencies shared by the routers."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pokerclub.utils.db import get_db

# Type aliases for dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
