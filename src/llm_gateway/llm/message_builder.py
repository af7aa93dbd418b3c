"""
Chat message construction for OpenAI-compatible providers.

Order is fixed: optional system message, then the context turns as given,
then the user's prompt last.
"""

from typing import Optional

from llm_gateway.models.enums import Role
from llm_gateway.models.llm_models import QueryOptions


def build_messages(prompt: str, options: Optional[QueryOptions] = None) -> list[dict[str, str]]:
    """
    Build the ordered chat message list for a query.
    
    Args:
        prompt: The user's prompt (always the last message)
        options: Optional system prompt and context turns
        
    Returns:
        List of {"role", "content"} dicts ready for the wire
        
    Examples:
        >>> build_messages("Hi", QueryOptions(system_prompt="Be brief"))
        [{'role': 'system', 'content': 'Be brief'}, {'role': 'user', 'content': 'Hi'}]
    """
    messages: list[dict[str, str]] = []
    
    if options is not None:
        if options.system_prompt:
            messages.append({"role": Role.SYSTEM.value, "content": options.system_prompt})
        for turn in options.context:
            messages.append({"role": turn.role.value, "content": turn.content})
    
    messages.append({"role": Role.USER.value, "content": prompt})
    return messages
