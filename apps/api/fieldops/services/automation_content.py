"""Automation message generation.

Builds a prompt per automation type from a snapshot of the entity's public
fields and asks the AI provider for the message text. Snapshots never carry
amounts, and every prompt tells the model not to mention pricing.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

import httpx

from fieldops.db.enums import AutomationType
from fieldops.services.ai_provider import AIProvider, ChatMessage, get_provider

logger = logging.getLogger(__name__)

GENERATION_TEMPERATURE = 0.3
GENERATION_MAX_TOKENS = 220


class GenerationError(Exception):
    """Message generation failed (provider error, empty content, or misconfiguration)."""

    pass


def _value(snapshot: Mapping[str, Any], key: str, fallback: str) -> str:
    value = snapshot.get(key)
    if value is None or value == "":
        return fallback
    return str(value)


def invoice_tone(days_overdue: int) -> str:
    """Tone guidance escalating with how late the invoice is."""
    if days_overdue >= 14:
        return "firmer tone with clear next steps (e.g., offering help to complete payment)"
    if days_overdue >= 7:
        return "direct but respectful reminder"
    return "friendly check-in"


def build_estimate_followup_prompt(snapshot: Mapping[str, Any]) -> str:
    return f"""You are following up on an estimate for a home services company.

Context:
- Estimate #: {_value(snapshot, "estimate_number", "unknown")}
- Title: {_value(snapshot, "title", "Not provided")}
- Status: {_value(snapshot, "status", "unknown")}
- Summary: {_value(snapshot, "description", "Not provided")}

Write a friendly, concise follow-up of 3-5 sentences. Invite questions and
offer to adjust the scope if needed. Encourage moving forward, but never
mention pricing, amounts or discounts. Do not promise scheduling or
availability beyond offering to help.

Return only the message."""


def build_invoice_followup_prompt(snapshot: Mapping[str, Any]) -> str:
    days_overdue = max(int(snapshot.get("days_overdue") or 0), 0)
    return f"""You are writing a polite invoice follow-up for a field service company.

Context:
- Invoice #: {_value(snapshot, "invoice_number", "unknown")}
- Client: {_value(snapshot, "client_name", "the client")}
- Due date: {_value(snapshot, "due_date", "not set")}
- Days overdue: {days_overdue}
- Current status: {_value(snapshot, "status", "unknown")}

Guidelines:
- Do NOT include pricing, amounts, or payment links.
- Tone for this reminder: {invoice_tone(days_overdue)}.
  (0-3 days overdue: friendly check-in; 7+ days: direct but respectful;
  14+ days: firmer with clear next steps.)
- Offer assistance and invite questions; avoid promises about availability.
- Keep to 3-5 sentences, professional and calm.

Return only the message."""


def build_job_closeout_prompt(snapshot: Mapping[str, Any]) -> str:
    return f"""Write a short closeout summary for a completed service visit.

Job Info:
- Job #: {_value(snapshot, "job_number", "unknown")}
- Title: {_value(snapshot, "title", "Not provided")}
- Description: {_value(snapshot, "description", "Not provided")}
- Service date: {_value(snapshot, "service_date", "not recorded")}

Cover what was completed in plain language, preventative tips for the
homeowner, any safety observations, and a suggested next service interval
without commitments. Stay under 150 words. No pricing and no guarantees."""


def build_review_request_prompt(snapshot: Mapping[str, Any]) -> str:
    return f"""Write a short, personal review request to a customer after a completed job.

Details:
- Customer name: {_value(snapshot, "client_name", "there")}
- Job title: {_value(snapshot, "title", "your recent service")}
- Job #: {_value(snapshot, "job_number", "unknown")}

Thank them for choosing the team and ask for a brief review on their
preferred platform (for example Google) without including a link. Keep it
warm and concise (2-4 sentences). Do not mention pricing, discounts,
future work or timing."""


def build_lead_response_prompt(snapshot: Mapping[str, Any]) -> str:
    city, state = snapshot.get("city"), snapshot.get("state")
    if city and state:
        location = f"{city}, {state}"
    else:
        location = city or state or "Not provided"
    name = " ".join(
        part for part in (snapshot.get("first_name"), snapshot.get("last_name")) if part
    )
    return f"""You are replying to a new lead for a home services company.

Lead Info:
- Name: {name or "there"}
- Service type: {_value(snapshot, "service_type", "General service")}
- Description: {_value(snapshot, "service_description", "No description provided")}
- City/State: {location}

Write a helpful reply that thanks them for reaching out, asks 2-3
clarifying questions about scope and timing, and explains general next
steps. Never quote pricing or commit to specific dates. Invite them to book
an estimate or call to discuss. Keep it to 3-5 sentences, professional and
safety-conscious.

Return only the message."""


PROMPT_BUILDERS: dict[AutomationType, Callable[[Mapping[str, Any]], str]] = {
    AutomationType.ESTIMATE_FOLLOWUP: build_estimate_followup_prompt,
    AutomationType.INVOICE_FOLLOWUP: build_invoice_followup_prompt,
    AutomationType.JOB_CLOSEOUT: build_job_closeout_prompt,
    AutomationType.REVIEW_REQUEST: build_review_request_prompt,
    AutomationType.LEAD_RESPONSE: build_lead_response_prompt,
}


class AutomationContentGenerator:
    """Turns an entity snapshot into message text via an AI provider."""

    def __init__(self, provider: AIProvider | None = None, model: str | None = None):
        self.provider = provider
        self.model = model

    @classmethod
    def from_settings(cls) -> "AutomationContentGenerator":
        return cls(provider=get_provider())

    async def generate(
        self, template_kind: AutomationType | str, snapshot: Mapping[str, Any]
    ) -> str:
        """
        Generate message text for one automation.

        Raises:
            GenerationError: unknown kind, no provider configured, provider
                failure, or empty content
        """
        if not AutomationType.has_value(template_kind):
            raise GenerationError(f"Unknown template kind: {template_kind}")
        if self.provider is None:
            raise GenerationError("OpenAI API key not configured")

        prompt = PROMPT_BUILDERS[AutomationType(template_kind)](snapshot)
        try:
            response = await self.provider.chat(
                [ChatMessage(role="user", content=prompt)],
                model=self.model,
                temperature=GENERATION_TEMPERATURE,
                max_tokens=GENERATION_MAX_TOKENS,
            )
        except httpx.HTTPError as e:
            logger.warning("AI provider request failed: %s", type(e).__name__)
            raise GenerationError(f"AI provider request failed: {e}") from e

        content = (response.content or "").strip()
        if not content:
            raise GenerationError("No content received from AI provider")
        return content
