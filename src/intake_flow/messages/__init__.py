"""Outbound message rendering.

Provides ``MessageRenderer``, a Jinja2-based template engine that turns
transition results (prompts, acknowledgements, summaries) into the text sent
to subjects.
"""

from intake_flow.messages.renderer import MessageRenderer, format_date, format_file_size

__all__ = ["MessageRenderer", "format_date", "format_file_size"]
