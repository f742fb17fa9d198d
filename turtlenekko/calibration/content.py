"""
Probe content generation.

Only the length of the prompt matters to the latency model; the random
prefix makes every cold probe start with a unique token sequence so the
server cannot reuse a cached KV prefix from an earlier request.
"""

from __future__ import annotations
from typing import List, Optional

import numpy as np

from ..core.interfaces import ChatMessage

PREFIX_CHARSET = "0123456789abcdefghijklmnopqrstuvwxyz"

FILLER_TEXT = (
    "Lorem ipsum dolor sit amet, consectetur adipiscing elit. Donec risus erat, interdum id magna egestas, "
    "sodales malesuada lacus. Nullam at sagittis lacus. Aliquam erat volutpat. Suspendisse sed dolor diam. "
    "Nunc ac purus ultrices, aliquet velit et, iaculis mauris. Nullam vitae justo est. Nam id nisi nisl. "
    "Pellentesque euismod ut urna a fringilla. Donec dictum, dolor vitae sagittis sollicitudin, dui quam "
    "posuere massa, non aliquet mauris justo maximus sapien. Proin suscipit ut turpis quis blandit. Sed sit "
    "amet convallis libero. Curabitur sed scelerisque nisi. Pellentesque faucibus commodo convallis. Nulla "
    "pellentesque ut turpis eu rutrum. Fusce ligula mi, elementum et dolor sit amet, accumsan eleifend dui. "
    "Vivamus vel massa vel nibh interdum euismod et vel elit. Praesent rutrum mi eu eleifend fringilla. Cras "
    "venenatis libero ac felis faucibus, et tincidunt est dignissim. Donec condimentum libero ex, at dictum "
    "odio maximus eu. Donec at accumsan turpis, at lacinia risus. Orci varius natoque penatibus et magnis dis "
    "parturient montes, nascetur ridiculus mus. Fusce maximus orci diam, eget consequat eros laoreet in. "
    "Morbi iaculis tincidunt erat, eget maximus risus mattis a. Donec ut nunc a augue placerat gravida. Fusce "
    "vitae eros eget eros maximus cursus at ut dolor. Sed eu finibus nulla. Pellentesque id placerat felis. "
    "Mauris at risus bibendum, ultrices felis ac, viverra urna. Donec lobortis cursus feugiat. Sed fermentum "
    "est nec sapien maximus, non lobortis tortor feugiat. Phasellus in molestie risus. Etiam faucibus sapien "
    "ex, nec elementum purus faucibus nec. Ut sed massa ornare nunc condimentum tincidunt et et massa. "
)


def generate_random_content(length: int, rng: Optional[np.random.Generator] = None) -> str:
    """Random lowercase alphanumeric string of exactly `length` characters."""
    if length <= 0:
        return ""
    rng = rng if rng is not None else np.random.default_rng()
    indices = rng.integers(0, len(PREFIX_CHARSET), size=length)
    return "".join(PREFIX_CHARSET[i] for i in indices)


def generate_filler(length: int) -> str:
    """Filler text repeated and truncated to exactly `length` characters."""
    if length <= 0:
        return ""
    repeats = -(-length // len(FILLER_TEXT))
    return (FILLER_TEXT * repeats)[:length]


def generate_probe_content(target_length: int,
                           random_prefix_length: int = 10,
                           suffix: str = "",
                           rng: Optional[np.random.Generator] = None) -> str:
    """
    Build probe prompt content.

    Layout: ``"seed:" + <random prefix> + "\\n" + <filler of target_length> + suffix``.

    Args:
        target_length: Exact filler length in characters (<= 0 gives no filler)
        random_prefix_length: Length of the random alphanumeric prefix token
        suffix: Appended verbatim
        rng: Random source; injectable for deterministic tests

    Returns:
        The prompt string
    """
    prefix = "seed:" + generate_random_content(random_prefix_length, rng) + "\n"
    return prefix + generate_filler(target_length) + (suffix or "")


def generate_messages(target_length: int,
                      random_prefix_length: int = 10,
                      suffix: str = "",
                      rng: Optional[np.random.Generator] = None) -> List[ChatMessage]:
    """Single user message carrying freshly generated probe content."""
    content = generate_probe_content(target_length, random_prefix_length, suffix, rng)
    return [{"role": "user", "content": content}]
