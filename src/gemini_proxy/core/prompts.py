# src/gemini_proxy/core/prompts.py
"""
Prompt text and JSON response schemas for the three proxy actions.

Schemas use Gemini's OpenAPI subset (upper-case type names), which is what
`generationConfig.response_schema` accepts.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Sequence

from ..models import CandidateProduct, ProductDetails


SYSTEM_INSTRUCTION = (
    "You are a shopping assistant that turns a conversation into a product filter. "
    "Classify what the user is looking for into exactly one of these categories: "
    "{categories}. "
    "Also extract up to 5 short lowercase keywords describing their needs. "
    "Respond ONLY with a JSON object of the form "
    '{{"category": "<one of the categories>", "keywords": ["..."]}} '
    "and nothing else."
)

SUGGEST_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "recommendedId": {"type": "NUMBER"},
    },
    "required": ["recommendedId"],
}


def system_instruction(categories: Sequence[str]) -> str:
    return SYSTEM_INSTRUCTION.format(categories=", ".join(f'"{c}"' for c in categories))


def filter_schema(categories: Sequence[str]) -> Dict[str, Any]:
    category: Dict[str, Any] = {"type": "STRING"}
    if categories:
        category["enum"] = list(categories)
    return {
        "type": "OBJECT",
        "properties": {
            "category": category,
            "keywords": {"type": "ARRAY", "items": {"type": "STRING"}},
        },
        "required": ["category", "keywords"],
    }


def _render_specs(specs: Any) -> str:
    if specs is None:
        return "n/a"
    if isinstance(specs, dict):
        return "; ".join(f"{k}: {v}" for k, v in specs.items())
    if isinstance(specs, list):
        return "; ".join(str(s) for s in specs)
    return str(specs)


def summarize_prompt(product: ProductDetails) -> str:
    return (
        "Write a single, engaging one-sentence summary of the following product "
        "for a shopper. Do not use bullet points or line breaks.\n\n"
        f"Product name: {product.name}\n"
        f"Description: {product.description}\n"
        f"Specs: {_render_specs(product.specs)}"
    )


def suggest_prompt(user_input: str, products: Iterable[CandidateProduct]) -> str:
    # only id/name/description go to the model; extra fields stay local
    slim = [{"id": p.id, "name": p.name, "description": p.description} for p in products]
    return (
        f'A shopper says: "{user_input}"\n\n'
        "From the product list below, choose the single product that best fits "
        "their need and return its id as recommendedId.\n\n"
        f"Products: {json.dumps(slim, ensure_ascii=False)}"
    )


def confirmation_message(category: str, keywords: List[str]) -> str:
    """Human-readable echo of the parsed filter, shown back in the chat."""
    if not keywords:
        return f"Got it! I'm showing you items in the {category} category."
    return (
        f"Got it! I'm showing you items in the {category} category, "
        f"focusing on: {', '.join(keywords)}."
    )
