from typing import List, Literal, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

AnswerId = Union[int, str]


class Answer(BaseModel):
    """
    Wire shape of one answer, as returned by the question API:
    { id, text, votes, votedByUser }
    """
    model_config = ConfigDict(populate_by_name=True)

    id: AnswerId
    text: str
    votes: int = Field(0, ge=0)
    voted_by_user: bool = Field(False, alias="votedByUser")


class QuestionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: AnswerId
    title: str = ""
    body: str = ""
    answers: List[Answer] = Field(default_factory=list)


class AnswerIn(BaseModel):
    text: str = Field(..., examples=["Use CONCAT(FirstName, ' ', LastName)."])


class DraftIn(BaseModel):
    text: str = ""


# ----------- board entries -----------

class Confirmed(BaseModel):
    """
    Entry backed by an authority-assigned id. Mutated in place by vote().
    """
    kind: Literal["confirmed"] = "confirmed"
    answer: Answer

    @property
    def key(self) -> AnswerId:
        return self.answer.id

    def to_public(self) -> dict:
        out = self.answer.model_dump(by_alias=True)
        out["pending"] = False
        return out


class Pending(BaseModel):
    """
    Optimistic entry waiting for the authority; identified only by its locally-minted id.
    """
    kind: Literal["pending"] = "pending"
    local_id: str
    text: str

    @field_validator("local_id")
    @classmethod
    def local_id_not_blank(cls, v: str) -> str:
        if not v:
            raise ValueError("local_id must be non-empty")
        return v

    @property
    def key(self) -> str:
        return self.local_id

    def to_public(self) -> dict:
        return {
            "id": self.local_id,
            "text": self.text,
            "votes": 0,
            "votedByUser": False,
            "pending": True,
        }


Entry = Union[Confirmed, Pending]


class BoardState(BaseModel):
    """
    Snapshot handed to the rendering layer.
    """
    question_id: Union[AnswerId, None] = None
    loading: bool = False
    source: Union[Literal["authority", "fallback"], None] = None
    title: str = ""
    body: str = ""
    answers: List[dict] = Field(default_factory=list)
    draft: str = ""
