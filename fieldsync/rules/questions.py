"""
Prompt questions the voice assistant asks, keyed by the field they answer.

Variants are listed longest first so the full question is preferred over a
fragment of it.
"""

from __future__ import annotations

from fieldsync.schemas.extraction import SemanticKey

QUESTION_PROMPTS: dict[SemanticKey, tuple[str, ...]] = {
    SemanticKey.MOTIVATION: (
        "What's got you thinking about selling your home yourself instead of working with an agent?",
        "what's got you thinking about selling",
        "thinking about selling your home yourself",
    ),
    SemanticKey.EXPECTATIONS: (
        "What's most important to you as you go through this selling process?",
        "most important to you as you go through this selling process",
        "what's most important to you",
    ),
    SemanticKey.DISAPPOINTMENTS: (
        "What's been the most challenging or disappointing part of selling on your own so far?",
        "most challenging or disappointing part",
        "disappointing part of selling on your own",
    ),
    SemanticKey.CONCERNS: (
        "Is there anything you're concerned about as you go through this on your own?",
        "anything you're concerned about",
        "concerned about as you go through this",
    ),
    SemanticKey.NEXT_DESTINATION: (
        "Where are you planning to go after you sell?",
        "planning to go after you sell",
        "where are you planning to go",
    ),
    SemanticKey.TIMELINE: (
        "Ideally, when would you like to have your home sold and be moved out?",
        "when would you like to have your home sold",
        "ideally, when would you like",
    ),
    SemanticKey.ASKING_PRICE: (
        "What price are you hoping to get for your home?",
        "price are you hoping to get",
        "what price are you hoping",
    ),
    SemanticKey.OPENNESS_TO_RELIST: (
        "If a great buyer came along, would you be open to working with an agent?",
        "would you be open to working with an agent",
        "great buyer came along",
    ),
}
