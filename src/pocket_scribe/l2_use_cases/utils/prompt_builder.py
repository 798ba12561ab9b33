"""Pure functions for building ChatML prompts from templates."""

from __future__ import annotations

from pocket_scribe.l1_entities.template import SummaryTemplate

TURN_START = '<|im_start|>'
END_OF_TURN = '<|im_end|>'


def chat_ml(system: str, user: str) -> str:
    """Wrap a system and a user message, leaving the assistant turn open."""
    return (
        f'{TURN_START}system\n{system}{END_OF_TURN}\n'
        f'{TURN_START}user\n{user}{END_OF_TURN}\n'
        f'{TURN_START}assistant\n'
    )


def build_summary_prompt(template: SummaryTemplate, text: str) -> str:
    """Build the full templated conversation for one summarization request."""
    return chat_ml(template.system_prompt, template.user_template.format(text=text))


def strip_end_of_turn(output: str) -> str:
    """Drop the end-of-turn marker and anything after it, then trim whitespace."""
    head, _, _ = output.partition(END_OF_TURN)
    return head.strip()
