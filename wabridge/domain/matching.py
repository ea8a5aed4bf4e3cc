"""Template matching: first trigger contained in the message wins."""

from typing import Iterable, Optional

from .models import Template


def find_matching_template(templates: Iterable[Template], body: str) -> Optional[Template]:
    """
    Return the first template whose trigger appears in `body`, ignoring case.

    No scoring or overlap resolution: list order decides. An empty trigger
    is contained in every string, so it matches any message.
    """
    lowered = body.lower()
    for template in templates:
        if template.trigger.lower() in lowered:
            return template
    return None
