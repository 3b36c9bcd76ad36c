# question API client (load / vote confirm / answer create)
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from .config import API_ENDPOINT, REQUEST_TIMEOUT, VOTE_TIMEOUT
from .errors import AuthorityError
from .identity import Identity
from .models import Answer, AnswerId, QuestionPayload

logger = logging.getLogger(__name__)


class AuthorityClient:
    """
    Narrow async transport to the question API. Every failure leaves this
    class as AuthorityError; callers never see raw httpx exceptions.

    `transport` is handed straight to httpx.AsyncClient (tests pass an
    httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str = API_ENDPOINT,
        timeout: float = REQUEST_TIMEOUT,
        vote_timeout: float = VOTE_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.vote_timeout = vote_timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AuthorityClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            resp = await self._client.request(method, url, **kwargs)
        except Exception as e:
            # transport errors, bad urls, anything the transport itself raises
            raise AuthorityError(f"{method} {url} failed: {e!r}") from e

        if not resp.is_success:
            raise AuthorityError(
                f"{method} {url} returned {resp.status_code}", status=resp.status_code
            )
        return resp

    @staticmethod
    def _json(resp: httpx.Response):
        try:
            return resp.json()
        except ValueError as e:
            raise AuthorityError(f"undecodable body from {resp.request.url}") from e

    async def fetch_question(self, question_id: AnswerId) -> QuestionPayload:
        resp = await self._request("GET", f"/question/{question_id}")
        try:
            return QuestionPayload.model_validate(self._json(resp))
        except ValidationError as e:
            raise AuthorityError(f"malformed question payload: {e}") from e

    async def confirm_vote(
        self, question_id: AnswerId, answer_id: AnswerId, identity: Identity
    ) -> None:
        """
        Response body is ignored; only transport/status failures raise.
        """
        await self._request(
            "POST",
            f"/question/{question_id}/answers/{answer_id}/vote",
            headers=identity.auth_headers(),
            timeout=self.vote_timeout,
        )

    async def create_answer(
        self, question_id: AnswerId, text: str, identity: Identity
    ) -> Answer:
        resp = await self._request(
            "POST",
            f"/question/{question_id}/answers",
            json={"text": text},
            headers=identity.auth_headers(),
        )
        try:
            return Answer.model_validate(self._json(resp))
        except ValidationError as e:
            raise AuthorityError(f"malformed answer payload: {e}") from e
