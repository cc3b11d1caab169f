"""
Request/response mapping for the face2face video generation service.
"""
import logging
from typing import Any, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict

from app.config import FACE2FACE_URL, HTTP_TIMEOUT

logger = logging.getLogger(__name__)

# Top-level response codes
CODE_OK = 10000
FATAL_CODES = frozenset({9999, 10002, 10003})

# data.status values of a status query
TASK_IN_PROGRESS = 1
TASK_SUCCEEDED = 2
TASK_FAILED = 3


class SubmitResponse(BaseModel):
    """Answer to a submission. code == 10000 means accepted."""
    model_config = ConfigDict(extra='allow')

    code: int
    msg: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.code == CODE_OK


class TaskStatus(BaseModel):
    model_config = ConfigDict(extra='allow')

    status: Optional[int] = None
    progress: Optional[Union[int, float]] = None
    msg: Optional[str] = None
    result: Optional[str] = None


class StatusResponse(BaseModel):
    """Answer to a status query."""
    model_config = ConfigDict(extra='allow')

    code: int
    msg: Optional[str] = None
    data: Optional[TaskStatus] = None

    @property
    def fatal(self) -> bool:
        return self.code in FATAL_CODES


class Face2FaceClient:
    """Thin async client: submit a job, query a job by its code."""

    def __init__(
        self,
        base_url: str = FACE2FACE_URL,
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def submit(self, params: dict[str, Any]) -> SubmitResponse:
        response = await self._client.post('/submit', json=params)
        response.raise_for_status()
        result = SubmitResponse.model_validate(response.json())
        logger.debug('face2face submit code=%s response=%s', params.get('code'), result)
        return result

    async def query(self, code: str) -> StatusResponse:
        response = await self._client.get('/query', params={'code': code})
        response.raise_for_status()
        return StatusResponse.model_validate(response.json())

    async def close(self):
        await self._client.aclose()


# Singleton instance
_face2face_client: Optional[Face2FaceClient] = None


def get_face2face_client() -> Face2FaceClient:
    """Get the face2face client singleton instance."""
    global _face2face_client
    if _face2face_client is None:
        _face2face_client = Face2FaceClient()
    return _face2face_client


def reset_face2face_client():
    """Reset the face2face client singleton (for testing)."""
    global _face2face_client
    _face2face_client = None
