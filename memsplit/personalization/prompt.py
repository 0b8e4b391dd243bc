"""
Personalized System Prompt
==========================

Turns the user's saved preferences into instructions for the LLM.

Preferences are a plain dict (whatever the settings page saved). Every
field is optional; missing or empty ones are simply skipped, so a brand-new
user gets the plain default prompt.

Style choices map to one guideline line each, e.g.
    conversation_style.tone = "casual"  ->  "- Use a casual, relaxed tone"
"""

from typing import Optional

ASSISTANT_NAME = "Zarvânex"

DEFAULT_PROMPT = (
    f"You are {ASSISTANT_NAME}, a helpful AI assistant. "
    "Be friendly, informative, and engaging in your responses."
)

TONE = {
    "professional": "- Maintain a professional and business-like tone",
    "casual": "- Use a casual, relaxed tone",
    "friendly": "- Be warm, friendly, and personable",
    "balanced": "- Use a balanced tone that's professional yet approachable",
}

FORMALITY = {
    "formal": "- Use formal language and proper grammar",
    "casual": "- Use casual language, contractions are fine",
    "adaptive": "- Adapt formality to match the user's style and context",
}

VERBOSITY = {
    "concise": "- Keep responses concise and to the point",
    "detailed": "- Provide detailed explanations and comprehensive information",
    "comprehensive": "- Give thorough, comprehensive responses with examples and context",
}

EMPATHY = {
    "high": "- Show high empathy and emotional understanding",
    "medium": "- Show moderate empathy while staying helpful",
    "low": "- Focus on practical help over emotional support",
}

TECHNICAL_DEPTH = {
    "basic": "- Explain technical concepts in simple, accessible terms",
    "medium": "- Use moderate technical detail, explain complex terms",
    "advanced": "- Use technical language freely, assume technical knowledge",
}

EXPLANATION_STYLE = {
    "examples": "- Use concrete examples to explain concepts",
    "step_by_step": "- Break down explanations into clear steps",
    "conceptual": "- Focus on conceptual understanding over details",
}

FEEDBACK = {
    "direct": "- Give direct, straightforward feedback",
    "constructive": "- Provide constructive, helpful feedback",
    "encouraging": "- Be encouraging and supportive in feedback",
}

LEARNING_STYLE = {
    "visual_and_text": "- Suggest visual aids, diagrams, or examples when helpful",
    "text_only": "- Focus on clear textual explanations",
    "interactive": "- Encourage interactive learning and questions",
}

EXAMPLES = {
    "theoretical": "- Use theoretical and abstract examples",
    "real_world": "- Use real-world, practical examples",
    "mixed": "- Use both theoretical and practical examples",
}


def _add(parts: list[str], table: dict, key: Optional[str]):
    if key in table:
        parts.append(table[key])


def generate_system_prompt(preferences: Optional[dict]) -> str:
    if preferences is None:
        return DEFAULT_PROMPT

    parts = [f"You are {ASSISTANT_NAME}, a helpful AI assistant."]

    name = preferences.get("nickname") or preferences.get("display_name")
    if name:
        parts.append(f'The user prefers to be called "{name}".')

    if preferences.get("pronouns"):
        parts.append(f"The user's pronouns are {preferences['pronouns']}.")

    if preferences.get("bio"):
        parts.append(f"\nUser Background:\n{preferences['bio']}")
    if preferences.get("occupation"):
        parts.append(f"\nUser's Occupation: {preferences['occupation']}")
    if preferences.get("goals"):
        parts.append(f"\nUser's Goals: {preferences['goals']}")
    if preferences.get("background"):
        parts.append(f"\nUser's Experience/Background: {preferences['background']}")

    if preferences.get("interests"):
        parts.append(f"\nUser's Interests: {', '.join(preferences['interests'])}")
    if preferences.get("skills"):
        parts.append(f"\nUser's Skills: {', '.join(preferences['skills'])}")

    content = preferences.get("content_preferences") or {}
    if content.get("expertise_areas"):
        parts.append(f"\nUser's Expertise Areas: {', '.join(content['expertise_areas'])}")
    if content.get("topics_of_interest"):
        parts.append(f"\nTopics User is Interested In: {', '.join(content['topics_of_interest'])}")

    if preferences.get("location"):
        parts.append(f"\nUser's Location: {preferences['location']}")

    parts.append("\nCommunication Guidelines:")

    style = preferences.get("conversation_style")
    if style:
        _add(parts, TONE, style.get("tone"))
        _add(parts, FORMALITY, style.get("formality"))
        _add(parts, VERBOSITY, style.get("verbosity"))
        if style.get("humor"):
            parts.append("- Feel free to use appropriate humor and wit")
        else:
            parts.append("- Keep responses serious and avoid humor")
        _add(parts, EMPATHY, style.get("empathy_level"))
        _add(parts, TECHNICAL_DEPTH, style.get("technical_depth"))

    comm = preferences.get("communication_prefs")
    if comm:
        greeting = comm.get("preferred_greeting")
        if greeting and greeting != "Hello":
            parts.append(f'- Greet the user with: "{greeting}"')
        _add(parts, EXPLANATION_STYLE, comm.get("explanation_style"))
        _add(parts, FEEDBACK, comm.get("feedback_preference"))
        _add(parts, LEARNING_STYLE, comm.get("learning_style"))

    if content:
        _add(parts, EXAMPLES, content.get("preferred_examples"))
        if content.get("content_filters"):
            parts.append(f"- Avoid topics: {', '.join(content['content_filters'])}")

    context = preferences.get("context_preferences")
    if context:
        level = context.get("personalization_level")
        if level == "high":
            parts.append("- Reference the user's background and preferences frequently")
        elif level == "medium":
            parts.append("- Occasionally reference the user's background when relevant")
        else:
            parts.append("- Keep responses general unless specifically asked about personal topics")

        if context.get("adapt_to_patterns"):
            parts.append("- Pay attention to the user's communication patterns and adapt accordingly")

    parts.append(
        "\nRemember to be helpful, accurate, and engaging while following "
        "these personalization guidelines."
    )

    return " ".join(parts)


def format_user_context(preferences: Optional[dict]) -> str:
    """One-line "[User Context: ...]" summary for chat context, or ""."""
    if not preferences:
        return ""

    context_parts = []

    if preferences.get("nickname"):
        context_parts.append(f"Name: {preferences['nickname']}")

    if preferences.get("occupation"):
        context_parts.append(f"Role: {preferences['occupation']}")

    interests = preferences.get("interests") or []
    if interests:
        more = "..." if len(interests) > 3 else ""
        context_parts.append(f"Interests: {', '.join(interests[:3])}{more}")

    style = preferences.get("conversation_style")
    if style:
        context_parts.append(
            f"Style: {style.get('tone')}, {style.get('verbosity')}, "
            f"{style.get('technical_depth')} technical"
        )

    if not context_parts:
        return ""
    return f"[User Context: {' | '.join(context_parts)}]"


def should_include_personalization(preferences: Optional[dict]) -> bool:
    """True only when the user has filled in something meaningful."""
    if not preferences:
        return False

    return any(
        preferences.get(field)
        for field in ("bio", "nickname", "occupation", "interests", "skills", "goals", "background")
    )
