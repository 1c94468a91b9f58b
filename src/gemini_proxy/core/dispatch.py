# src/gemini_proxy/core/dispatch.py
"""
Request shaping and response extraction for the Gemini proxy.

One inbound request -> (validate) -> build Gemini body -> exactly one
outbound call -> reshape the first candidate's text for the frontend.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from gemini_proxy.adapters import gemini
from gemini_proxy.core import prompts
from gemini_proxy.core.config import Settings
from gemini_proxy.core.errors import (
    InternalError,
    InvalidAction,
    MethodNotAllowed,
    MissingCredential,
    ProxyError,
)
from gemini_proxy.core.trace import RequestTrace
from gemini_proxy.models import (
    PAYLOAD_MODELS,
    Envelope,
    FilterPayload,
    FilterResult,
    SuggestPayload,
    SuggestResult,
    SummarizePayload,
)

log = logging.getLogger(__name__)

Generate = Callable[[Settings, Dict[str, Any]], str]


@dataclass
class ProxyResponse:
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)


def _user_text(text: str) -> Dict[str, Any]:
    return {"role": "user", "parts": [{"text": text}]}


def _json_config(schema: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "response_mime_type": "application/json",
        "response_schema": schema,
    }


class Dispatcher:
    """
    Stateless: holds only the injected settings and the outbound callable.
    `generate` defaults to the Gemini adapter; tests usually stub the
    adapter's `_post` instead.
    """

    def __init__(self, settings: Settings, generate: Optional[Generate] = None):
        self.settings = settings
        self._generate = generate or gemini.generate

    # ---- request bodies -----------------------------------------------------

    def build_filter_body(self, payload: FilterPayload) -> Dict[str, Any]:
        contents = [_user_text(prompts.system_instruction(self.settings.categories))]
        contents += [turn.model_dump() for turn in payload.chat_history]
        if payload.user_message:
            contents.append(_user_text(payload.user_message))

        schema = payload.response_schema or prompts.filter_schema(self.settings.categories)
        return {"contents": contents, "generationConfig": _json_config(schema)}

    def build_summarize_body(self, payload: SummarizePayload) -> Dict[str, Any]:
        # a pre-built prompt wins and goes through untouched
        text = payload.prompt if payload.prompt else prompts.summarize_prompt(payload.product)
        return {"contents": [{"parts": [{"text": text}]}]}

    def build_suggest_body(self, payload: SuggestPayload) -> Dict[str, Any]:
        text = prompts.suggest_prompt(payload.user_input, payload.products)
        return {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": _json_config(prompts.SUGGEST_SCHEMA),
        }

    # ---- response shaping ---------------------------------------------------

    @staticmethod
    def shape_filter(text: str) -> Dict[str, Any]:
        obj = json.loads(text)
        try:
            parsed = FilterResult.model_validate(obj)
        except ValidationError:
            raise InternalError("model output did not match the filter schema") from None
        return {
            "aiResponseObject": obj,
            "modelChatMessage": prompts.confirmation_message(parsed.category, parsed.keywords),
        }

    @staticmethod
    def shape_suggest(text: str, payload: SuggestPayload, raw_products: List[Any]) -> Dict[str, Any]:
        """
        Linear scan on the validated ids; the caller's own product dict is
        what goes back, untouched.
        """
        try:
            rid = SuggestResult.model_validate(json.loads(text)).recommended_id
        except ValidationError:
            raise InternalError("model output did not match the suggest schema") from None
        # unmatched id is not an error: the frontend gets product=null
        match = next(
            (raw for p, raw in zip(payload.products, raw_products) if p.id == rid),
            None,
        )
        if match is None:
            log.warning("Gemini recommended id %s which is not in the product list", rid)
        return {"product": match}

    @staticmethod
    def shape_summarize(text: str) -> Dict[str, Any]:
        return {"summary": text}

    # ---- entry point --------------------------------------------------------

    def _run(self, action: str, raw_payload: Any) -> Dict[str, Any]:
        model = PAYLOAD_MODELS[action]
        payload = model.model_validate(raw_payload if raw_payload is not None else {})

        if action == "filter":
            text = self._generate(self.settings, self.build_filter_body(payload))
            return self.shape_filter(text)
        if action == "suggest":
            text = self._generate(self.settings, self.build_suggest_body(payload))
            return self.shape_suggest(text, payload, raw_payload["products"])
        text = self._generate(self.settings, self.build_summarize_body(payload))
        return self.shape_summarize(text)

    def dispatch(self, method: str, body: Any) -> Dict[str, Any]:
        """Raises ProxyError subclasses; returns the 200 body."""
        if (method or "").upper() != "POST":
            raise MethodNotAllowed()

        if not self.settings.gemini_api_key:
            raise MissingCredential()

        if not isinstance(body, dict):
            raise InternalError("request body must be a JSON object")

        env = Envelope.model_validate(body)
        action = env.resolved_action
        if not isinstance(action, str) or action not in PAYLOAD_MODELS:
            raise InvalidAction()

        try:
            return self._run(action, env.payload)
        except ProxyError:
            raise
        except ValidationError as ex:
            raise InternalError(f"malformed {action} payload ({ex.error_count()} errors)") from None
        except json.JSONDecodeError as ex:
            raise InternalError(f"model output was not valid JSON: {ex.msg}") from None
        except Exception as ex:
            log.exception("Unexpected failure handling action=%s", action)
            raise InternalError(type(ex).__name__) from None

    def handle(self, method: str, body: Any) -> ProxyResponse:
        with RequestTrace(method, body) as trace:
            try:
                resp = ProxyResponse(200, self.dispatch(method, body))
            except ProxyError as err:
                if err.status_code >= 500:
                    log.error("Request failed: %s (%s)", err.message, err.detail or "-")
                resp = ProxyResponse(err.status_code, err.to_body())
            trace.status = resp.status_code
        return resp
