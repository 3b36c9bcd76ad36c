# optimistic answer list for one question + reconciliation with the question API
import asyncio
import itertools
import logging
from typing import List, Optional, Set

from .authority import AuthorityClient
from .config import LOCAL_ID_PREFIX
from .errors import (
    AnswerNotFound,
    EmptyInput,
    LoadFailed,
    NotLoaded,
    SubmissionFailed,
    Unauthorized,
)
from .identity import Identity
from .models import Answer, AnswerId, BoardState, Confirmed, Entry, Pending, QuestionPayload
from .sample import sample_question

logger = logging.getLogger(__name__)


def validate_question(payload: QuestionPayload) -> QuestionPayload:
    """
    A usable question has a title, a body and at least one answer.
    """
    missing = []
    if not payload.title.strip():
        missing.append("title")
    if not payload.body.strip():
        missing.append("body")
    if not payload.answers:
        missing.append("answers")
    if missing:
        raise LoadFailed(f"question {payload.id} has no {', '.join(missing)}")
    return payload


class AnswerBoard:
    """
    Owns the answer sequence for the question being displayed.

    All mutation happens on the event loop thread; each operation replaces or
    edits the sequence in one step with no await in between, so an optimistic
    insert and its later reconciliation never interleave halfway.

    Loads are versioned by an epoch: only the load started last may write
    state, and starting a new one cancels the previous request.
    """

    def __init__(self, authority: AuthorityClient):
        self._authority = authority
        self._entries: List[Entry] = []
        self._epoch = 0
        self._load_task: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()
        self._local_ids = itertools.count(1)

        self.question_id: Optional[AnswerId] = None
        self.title = ""
        self.body = ""
        self.source: Optional[str] = None
        self.loading = False
        self.draft = ""

    # ----------- state -----------

    @property
    def entries(self) -> List[Entry]:
        return list(self._entries)

    @property
    def answers(self) -> List[dict]:
        return [e.to_public() for e in self._entries]

    @property
    def settled(self) -> bool:
        """
        No outstanding load, confirmation, or unconfirmed entry.
        """
        if self._load_task is not None and not self._load_task.done():
            return False
        if any(not t.done() for t in self._background):
            return False
        return not any(isinstance(e, Pending) for e in self._entries)

    def snapshot(self) -> BoardState:
        return BoardState(
            question_id=self.question_id,
            loading=self.loading,
            source=self.source,
            title=self.title,
            body=self.body,
            answers=self.answers,
            draft=self.draft,
        )

    def _find(self, answer_id: AnswerId) -> Optional[Entry]:
        # ids arrive as path strings but the API may hand out ints
        wanted = str(answer_id)
        for e in self._entries:
            if str(e.key) == wanted:
                return e
        return None

    def _mint_local_id(self) -> str:
        return f"{LOCAL_ID_PREFIX}{next(self._local_ids)}"

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug("background task finished with %r", task.exception())

    # ----------- load -----------

    def load(self, question_id: AnswerId) -> asyncio.Task:
        """
        Start loading `question_id`, cancelling any load still in flight.
        The previous question is cleared right away rather than kept on screen
        until the response lands.
        Must be called from inside the running event loop.
        """
        if self._load_task is not None and not self._load_task.done():
            logger.debug("superseding load of question %s", self.question_id)
            self._load_task.cancel()

        self._epoch += 1
        self.question_id = question_id
        self.title = ""
        self.body = ""
        self.source = None
        self._entries = []
        self.loading = True

        self._load_task = asyncio.get_running_loop().create_task(
            self._load(question_id, self._epoch)
        )
        return self._load_task

    async def _load(self, question_id: AnswerId, epoch: int) -> None:
        # CancelledError is not caught here: a superseded load must leave no trace
        try:
            payload = validate_question(await self._authority.fetch_question(question_id))
            source = "authority"
        except Exception as e:
            logger.warning("question %s unavailable, showing sample: %s", question_id, e)
            payload = sample_question()
            source = "fallback"

        if epoch != self._epoch:
            logger.debug("dropping stale load of question %s", question_id)
            return

        self._apply_question(payload, source)
        self.loading = False
        logger.info("question %s loaded from %s (%d answers)", question_id, source, len(self._entries))

    def _apply_question(self, payload: QuestionPayload, source: str) -> None:
        self.title = payload.title
        self.body = payload.body
        self.source = source
        self._entries = [Confirmed(answer=a) for a in payload.answers]

    # ----------- vote -----------

    def vote(self, answer_id: AnswerId, identity: Identity) -> bool:
        """
        Count the caller's vote locally and confirm it with the API in the
        background. Returns True if the count moved.

        Confirmation is best-effort: a lost or rejected confirmation is
        logged and never rolled back; the next load brings the authority's
        count back.
        """
        if not identity.is_authorized:
            raise Unauthorized("Please sign in to vote.")
        if self.question_id is None:
            raise NotLoaded()

        entry = self._find(answer_id)
        if entry is None:
            raise AnswerNotFound(f"no answer {answer_id} on question {self.question_id}")
        if isinstance(entry, Pending):
            # nothing the API could confirm yet
            return False
        if entry.answer.voted_by_user:
            return False

        entry.answer.votes += 1
        entry.answer.voted_by_user = True

        self._spawn(self._confirm_vote(self.question_id, entry.answer.id, identity))
        return True

    async def _confirm_vote(self, question_id: AnswerId, answer_id: AnswerId, identity: Identity) -> None:
        try:
            await self._authority.confirm_vote(question_id, answer_id, identity)
        except Exception as e:
            logger.warning("vote on answer %s not confirmed: %s", answer_id, e)

    # ----------- submit -----------

    def submit_answer(self, text: str, identity: Identity) -> asyncio.Task:
        """
        Append `text` as an unconfirmed answer right away and return the task
        that reconciles it. The task resolves to the confirmed Answer, or
        raises SubmissionFailed after removing the unconfirmed entry.

        Must be called from inside the running event loop.
        """
        if not identity.is_authorized:
            raise Unauthorized("Please sign in to submit your answer.")
        if not text or not text.strip():
            raise EmptyInput()
        if self.question_id is None:
            raise NotLoaded()

        pending = Pending(local_id=self._mint_local_id(), text=text)
        self._entries = [*self._entries, pending]
        self.draft = ""

        def rollback_if_cancelled(task: asyncio.Task) -> None:
            # also covers a task cancelled before its coroutine ever ran
            if task.cancelled():
                self._rollback(pending.local_id, "cancelled")

        task = self._spawn(self._reconcile(self.question_id, pending, identity))
        task.add_done_callback(rollback_if_cancelled)
        return task

    async def _reconcile(self, question_id: AnswerId, pending: Pending, identity: Identity) -> Answer:
        try:
            confirmed = await self._authority.create_answer(question_id, pending.text, identity)
        except Exception as e:
            self._rollback(pending.local_id, e)
            raise SubmissionFailed() from e

        self._commit(pending.local_id, confirmed)
        return confirmed

    def _rollback(self, local_id: str, reason) -> None:
        self._drop(local_id)
        logger.warning("answer %s rolled back: %s", local_id, reason)

    def _index_of_pending(self, local_id: str) -> Optional[int]:
        for i, e in enumerate(self._entries):
            if isinstance(e, Pending) and e.local_id == local_id:
                return i
        return None

    def _drop(self, local_id: str) -> None:
        self._entries = [
            e for e in self._entries
            if not (isinstance(e, Pending) and e.local_id == local_id)
        ]

    def _commit(self, local_id: str, answer: Answer) -> None:
        entries = list(self._entries)
        idx = self._index_of_pending(local_id)
        if idx is None:
            # question changed underneath us; the answer lives on the server only
            logger.info("answer %s confirmed as %s after its question was replaced", local_id, answer.id)
            return

        already_there = any(
            isinstance(e, Confirmed) and str(e.key) == str(answer.id) for e in entries
        )
        if already_there:
            del entries[idx]
        else:
            entries[idx] = Confirmed(answer=answer)
        self._entries = entries
        logger.debug("answer %s confirmed as %s", local_id, answer.id)

    # ----------- refresh / teardown -----------

    async def refresh(self) -> bool:
        """
        Pull the current question again and take the API's copy of every
        confirmed entry, except that a vote this caller already counted stays
        counted (flag and count never go backwards). Unconfirmed entries stay at
        the tail. A failed or unusable fetch changes nothing. Returns True if
        state was replaced.
        """
        if self.question_id is None or self.loading:
            return False

        question_id, epoch = self.question_id, self._epoch
        try:
            payload = validate_question(await self._authority.fetch_question(question_id))
        except Exception as e:
            logger.warning("refresh of question %s skipped: %s", question_id, e)
            return False

        if epoch != self._epoch:
            return False

        # read local state after the await so votes cast meanwhile are kept
        voted = {
            str(e.key): e.answer.votes
            for e in self._entries
            if isinstance(e, Confirmed) and e.answer.voted_by_user
        }
        pending = [e for e in self._entries if isinstance(e, Pending)]
        self._apply_question(payload, "authority")
        for e in self._entries:
            local_votes = voted.get(str(e.key))
            if local_votes is not None:
                e.answer.voted_by_user = True
                e.answer.votes = max(e.answer.votes, local_votes)
        self._entries = [*self._entries, *pending]
        return True

    async def settle(self) -> None:
        """
        Wait until every outstanding load, confirmation and submission is done.
        Outstanding work is never cancelled from here.
        """
        while True:
            tasks = {t for t in (self._load_task, *self._background) if t is not None and not t.done()}
            if not tasks:
                return
            await asyncio.wait(tasks)

    def close(self) -> None:
        """
        Tear down: cancel the outstanding load. Dispatched confirmations finish on their own.
        """
        self._epoch += 1
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
        self.loading = False
