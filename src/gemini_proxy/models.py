# src/gemini_proxy/models.py
from __future__ import annotations
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

Action = Literal["filter", "summarize", "suggest"]
Role = Literal["user", "model"]


class Part(BaseModel):
    text: str


class ChatTurn(BaseModel):
    """One Gemini `Content` entry, as the frontend keeps its history."""
    role: Role
    parts: List[Part]


class Envelope(BaseModel):
    """Raw inbound body. `type` is an older name for `action`."""
    model_config = ConfigDict(extra="ignore")

    action: Any = None
    type: Any = None
    payload: Any = None

    @property
    def resolved_action(self) -> Optional[str]:
        return self.action if self.action is not None else self.type


# ---- filter -----------------------------------------------------------------

class FilterPayload(BaseModel):
    chat_history: List[ChatTurn] = Field(default_factory=list, alias="chatHistory")
    user_message: Optional[str] = Field(default=None, alias="userMessage")
    response_schema: Optional[Dict[str, Any]] = Field(default=None, alias="responseSchema")

    @model_validator(mode="after")
    def _has_user_turn(self) -> "FilterPayload":
        # nothing to classify without at least one user turn
        if self.user_message and self.user_message.strip():
            return self
        if any(t.role == "user" and any(p.text.strip() for p in t.parts) for t in self.chat_history):
            return self
        raise ValueError("filter needs a user turn in 'chatHistory' or a 'userMessage'")


class FilterResult(BaseModel):
    category: str
    keywords: List[str]


# ---- summarize --------------------------------------------------------------

class ProductDetails(BaseModel):
    name: str
    description: str = ""
    specs: Any = None  # str, mapping or list; rendered as text


class SummarizePayload(BaseModel):
    product: Optional[ProductDetails] = None
    prompt: Optional[str] = None

    @model_validator(mode="after")
    def _product_or_prompt(self) -> "SummarizePayload":
        if self.product is None and not self.prompt:
            raise ValueError("summarize needs either 'product' or 'prompt'")
        return self


# ---- suggest ----------------------------------------------------------------

class CandidateProduct(BaseModel):
    """Extra fields (price, image, ...) are kept so a match echoes them back."""
    model_config = ConfigDict(extra="allow")

    id: int
    name: str
    description: str = ""


class SuggestPayload(BaseModel):
    user_input: str = Field(alias="userInput")
    products: List[CandidateProduct]


class SuggestResult(BaseModel):
    recommended_id: int = Field(alias="recommendedId")


PAYLOAD_MODELS: Dict[Action, type] = {
    "filter": FilterPayload,
    "summarize": SummarizePayload,
    "suggest": SuggestPayload,
}
