"""Typed API operations on top of the request executor.

One method per endpoint; each picks its response kind explicitly.
"""

from datetime import datetime

from healthsync.api.endpoints import EMPTY, Endpoint, HttpMethod, json_of
from healthsync.api.executor import RequestExecutor
from healthsync.domain.models import (
    AnalysisRequest,
    AnalysisResponse,
    Demographic,
    EmptyResponse,
    Reading,
)


class ApiController:
    def __init__(self, executor: RequestExecutor) -> None:
        self._executor = executor

    async def get_demographic(self) -> Demographic:
        """Fetch the profile demographic. A 204 yields an empty Demographic."""
        return await self._executor.execute(
            Endpoint.DEMOGRAPHIC,
            HttpMethod.GET,
            kind=json_of(Demographic, zero_on_no_content=True),
        )

    async def put_demographic(self, demographic: Demographic) -> EmptyResponse:
        return await self._executor.execute(
            Endpoint.DEMOGRAPHIC, HttpMethod.PUT, demographic, EMPTY
        )

    async def analyze(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        include_source_data: bool = False,
    ) -> AnalysisResponse:
        body = AnalysisRequest(
            start_date_time=start,
            end_date_time=end,
            include_source_data=include_source_data,
        )
        return await self._executor.execute(
            Endpoint.ANALYZE, HttpMethod.POST, body, json_of(AnalysisResponse)
        )

    async def post_logs(self, endpoint: Endpoint, readings: list[Reading]) -> EmptyResponse:
        """Post one chunk of readings to a log endpoint."""
        if endpoint not in (Endpoint.SLEEP_LOG, Endpoint.MOVEMENT_LOG):
            raise ValueError(f"{endpoint.path} is not a log endpoint")
        return await self._executor.execute(endpoint, HttpMethod.POST, readings, EMPTY)
