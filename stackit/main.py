import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse

from .authority import AuthorityClient
from .board import AnswerBoard
from .config import PORT, RESYNC_INTERVAL
from .errors import BoardError
from .identity import Identity
from .logging_setup import configure_logging
from .models import AnswerIn, BoardState, DraftIn
from .resync import resync_loop


def get_identity(authorization: Optional[str] = Header(None)) -> Identity:
    return Identity.from_header(authorization)


def get_board(request: Request) -> AnswerBoard:
    return request.app.state.board


def create_app(
    authority: Optional[AuthorityClient] = None,
    resync_interval: float = RESYNC_INTERVAL,
) -> FastAPI:
    """
    HTTP face of one answer board, for the rendering layer. Routes are all
    async so board mutation stays on the event loop thread. Pass `authority`
    to point the board at something other than API_ENDPOINT.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        client = authority or AuthorityClient()
        board = AnswerBoard(client)
        app.state.board = board
        # Startup: background tasks
        resync = asyncio.create_task(resync_loop(board, resync_interval))
        yield
        # Shutdown: stop loading, let dispatched confirmations finish
        resync.cancel()
        board.close()
        await board.settle()
        await client.aclose()

    app = FastAPI(title="StackIt answer board", lifespan=lifespan)

    @app.exception_handler(BoardError)
    async def board_error_handler(request: Request, exc: BoardError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error": type(exc).__name__},
        )

    @app.get("/board")
    async def get_state(board: AnswerBoard = Depends(get_board)) -> BoardState:
        return board.snapshot()

    @app.post("/board/load/{question_id}")
    async def load(question_id: str, board: AnswerBoard = Depends(get_board)) -> BoardState:
        # a newer load may supersede this one; report whatever is current then
        await asyncio.wait({board.load(question_id)})
        return board.snapshot()

    @app.put("/board/draft")
    async def set_draft(d: DraftIn, board: AnswerBoard = Depends(get_board)) -> BoardState:
        board.draft = d.text
        return board.snapshot()

    @app.post("/board/answers/{answer_id}/vote")
    async def vote(
        answer_id: str,
        board: AnswerBoard = Depends(get_board),
        identity: Identity = Depends(get_identity),
    ):
        applied = board.vote(answer_id, identity)
        return {"applied": applied, "answers": board.answers}

    @app.post("/board/answers", status_code=201)
    async def submit(
        a: AnswerIn,
        board: AnswerBoard = Depends(get_board),
        identity: Identity = Depends(get_identity),
    ):
        task = board.submit_answer(a.text, identity)
        # a dropped client connection must not cancel the submission
        answer = await asyncio.shield(task)
        return answer.model_dump(by_alias=True)

    @app.post("/board/refresh")
    async def refresh(board: AnswerBoard = Depends(get_board)):
        changed = await board.refresh()
        return {"changed": changed, "state": board.snapshot().model_dump()}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("stackit.main:app", host="0.0.0.0", port=PORT, log_level="info")
