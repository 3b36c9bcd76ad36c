import asyncio
import json

import httpx
import pytest

from fakes import BASE_URL, fail_with, loaded_board, make_board, question, reply_with, texts
from stackit.authority import AuthorityClient
from stackit.board import AnswerBoard
from stackit.errors import EmptyInput, NotLoaded, SubmissionFailed, Unauthorized
from stackit.models import Confirmed, Pending


def test_failed_submission_rolls_back(api, alice):
    api.answer_rules["hello"] = fail_with(500)

    async def main():
        board = await loaded_board(api)
        before = board.answers
        gate = api.gate("answer:hello")
        task = board.submit_answer("hello", alice)
        during = board.answers
        gate.set()
        with pytest.raises(SubmissionFailed):
            await task
        return before, during, board.answers

    before, during, after = asyncio.run(main())
    assert [a["text"] for a in during] == [a["text"] for a in before] + ["hello"]
    assert during[-1]["pending"] is True
    assert after == before


def test_confirmed_answer_takes_the_pending_slot(api, alice):
    api.answer_rules["hello"] = reply_with({"id": 42, "text": "hello", "votes": 0, "votedByUser": False})

    async def main():
        board = await loaded_board(api)
        confirmed = await board.submit_answer("hello", alice)
        return board, confirmed

    board, confirmed = asyncio.run(main())
    assert confirmed.id == 42
    ids = [a["id"] for a in board.answers]
    assert ids == [10, 11, 42]
    assert board.answers[2] == {"id": 42, "text": "hello", "votes": 0, "votedByUser": False, "pending": False}
    assert board.settled


def test_commits_keep_submission_order_when_responses_cross(api, alice):
    api.answer_rules["first"] = reply_with({"id": 1001, "text": "first", "votes": 0, "votedByUser": False})
    api.answer_rules["second"] = reply_with({"id": 1002, "text": "second", "votes": 0, "votedByUser": False})

    async def main():
        board = await loaded_board(api)
        gate_first = api.gate("answer:first")
        t1 = board.submit_answer("first", alice)
        t2 = board.submit_answer("second", alice)
        await t2
        mid = [(a["id"], a["pending"]) for a in board.answers]
        gate_first.set()
        await t1
        return board, mid

    board, mid = asyncio.run(main())
    assert mid[2][1] is True
    assert mid[3] == (1002, False)
    assert [a["id"] for a in board.answers] == [10, 11, 1001, 1002]


def test_one_fails_one_succeeds(api, alice):
    api.answer_rules["good"] = reply_with({"id": 77, "text": "good", "votes": 0, "votedByUser": False})
    api.answer_rules["bad"] = fail_with(503)

    async def main():
        board = await loaded_board(api)
        good = board.submit_answer("good", alice)
        bad = board.submit_answer("bad", alice)
        results = await asyncio.gather(good, bad, return_exceptions=True)
        return board, results

    board, results = asyncio.run(main())
    assert results[0].id == 77
    assert isinstance(results[1], SubmissionFailed)
    assert texts(board) == ["Use the | operator.", "Use {**a, **b}.", "good"]
    assert not any(a["pending"] for a in board.answers)


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_blank_text_is_rejected(api, alice, text):
    async def main():
        board = await loaded_board(api)
        before = board.answers
        with pytest.raises(EmptyInput):
            board.submit_answer(text, alice)
        return before, board.answers

    before, after = asyncio.run(main())
    assert before == after
    assert api.paths("POST") == []


def test_unauthorized_submit_changes_nothing(api, anonymous):
    async def main():
        board = await loaded_board(api)
        board.draft = "my answer"
        before = board.answers
        with pytest.raises(Unauthorized):
            board.submit_answer("my answer", anonymous)
        return board, before

    board, before = asyncio.run(main())
    assert board.answers == before
    assert board.draft == "my answer"


def test_submit_before_any_load(api, alice):
    board = make_board(api)
    with pytest.raises(NotLoaded):
        board.submit_answer("hello", alice)


def test_draft_cleared_and_not_restored(api, alice):
    api.answer_rules["typed"] = fail_with(500)

    async def main():
        board = await loaded_board(api)
        board.draft = "typed"
        task = board.submit_answer(board.draft, alice)
        cleared = board.draft
        with pytest.raises(SubmissionFailed):
            await task
        return cleared, board.draft

    cleared, after = asyncio.run(main())
    assert cleared == ""
    assert after == ""


def test_submission_sends_text_and_credential(api, alice):
    async def main():
        board = await loaded_board(api)
        await board.submit_answer("  padded  ", alice)

    asyncio.run(main())
    req = [r for r in api.requests if r.method == "POST"][0]
    assert req.url.path == "/question/7/answers"
    assert req.headers["authorization"] == "Bearer alice-token"
    assert json.loads(req.content) == {"text": "  padded  "}


def test_local_ids_never_repeat(api, alice):
    async def main():
        board = await loaded_board(api)
        for text in ("a", "b", "c"):
            api.gate(f"answer:{text}")
        tasks = [board.submit_answer(t, alice) for t in ("a", "b", "c")]
        pending = [e.local_id for e in board.entries if isinstance(e, Pending)]
        for t in tasks:
            t.cancel()
        await board.settle()
        return pending

    pending = asyncio.run(main())
    assert len(set(pending)) == 3
    assert all(p.startswith("local-") for p in pending)


def test_cancelled_submission_rolls_back(api, alice):
    async def main():
        board = await loaded_board(api)
        before = board.answers
        api.gate("answer:slow")
        task = board.submit_answer("slow", alice)
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return before, board.answers

    before, after = asyncio.run(main())
    assert after == before


def test_no_duplicate_when_refresh_saw_the_answer_first(api, alice):
    api.answer_rules["late"] = reply_with({"id": 55, "text": "late", "votes": 0, "votedByUser": False})

    async def main():
        board = await loaded_board(api)
        gate = api.gate("answer:late")
        task = board.submit_answer("late", alice)
        # the server already has it by the time we refresh
        api.questions["7"] = question(7, answers=question(7)["answers"] + [
            {"id": 55, "text": "late", "votes": 2, "votedByUser": False},
        ])
        assert await board.refresh() is True
        gate.set()
        await task
        return board

    board = asyncio.run(main())
    assert [a["id"] for a in board.answers] == [10, 11, 55]
    assert board.answers[-1]["votes"] == 2
    assert all(isinstance(e, Confirmed) for e in board.entries)


def test_confirmation_for_replaced_question_is_dropped(api, alice):
    async def main():
        board = await loaded_board(api)
        gate = api.gate("answer:old")
        task = board.submit_answer("old", alice)
        await board.load("8")
        gate.set()
        await task
        return board

    board = asyncio.run(main())
    assert board.title == "Second question"
    assert "old" not in texts(board)


@pytest.mark.parametrize("question_id", ["bad\x00id", "7"])
def test_unexpected_transport_failure_rolls_back(alice, question_id):
    def broken(request):
        raise RuntimeError("transport blew up")

    async def main():
        board = AnswerBoard(AuthorityClient(base_url=BASE_URL, transport=httpx.MockTransport(broken)))
        await board.load(question_id)
        before = board.answers
        with pytest.raises(SubmissionFailed):
            await board.submit_answer("hello", alice)
        return board, before

    board, before = asyncio.run(main())
    assert board.answers == before
    assert board.settled
