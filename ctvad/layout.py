from typing import Callable, List, Optional


def wrap_text(
    text: str,
    max_width: float,
    measure: Callable[[str], float],
    max_lines: Optional[int] = 3,
) -> List[str]:
    """Greedy word wrap against a measured pixel width.

    Lines break only at spaces. A word wider than `max_width` on its own is
    kept whole. Anything past `max_lines` is dropped.
    """
    lines: List[str] = []
    current = ""
    for word in text.split(" "):
        if not word:
            continue
        candidate = f"{current} {word}" if current else word
        if current and measure(candidate) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)

    if max_lines is not None:
        lines = lines[:max_lines]
    return lines
