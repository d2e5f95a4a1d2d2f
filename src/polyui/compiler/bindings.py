"""Per-target processing of binding code."""

import re
from typing import Dict, Optional, Sequence

from polyui.compiler.expressions import ExpressionRewriter, get_default_rewriter

STATE_ROOT = "state"
PROPS_ROOT = "props"


class BindingRewriter:
    """Turns IR expression code into code valid for one target.

    Args:
        rewriter: Expression service; defaults to the token rewriter.
        dirty_marker: Statement inserted after every ``state`` mutation, or
            None when the target tracks changes itself.
        reference_prefix: Access form replacing ``state.`` / ``props.``, or
            None to leave references untouched.
    """

    def __init__(
        self,
        rewriter: Optional[ExpressionRewriter] = None,
        dirty_marker: Optional[str] = None,
        reference_prefix: Optional[str] = None,
        roots: Sequence[str] = (STATE_ROOT, PROPS_ROOT),
    ) -> None:
        self.rewriter = rewriter or get_default_rewriter()
        self.dirty_marker = dirty_marker
        self.reference_prefix = reference_prefix
        self.roots = tuple(roots)

    def process(self, code: str) -> str:
        """Rewrite code for substitution into expression position."""
        self.rewriter.validate(code)
        if self.dirty_marker:
            code = self.rewriter.insert_after_mutations(
                code, STATE_ROOT, self.dirty_marker
            )
        if self.reference_prefix is not None:
            replacements: Dict[str, str] = {
                root: self.reference_prefix for root in self.roots
            }
            code = self.rewriter.rewrite_references(code, replacements)
        return strip_trailing_semicolon(code)


def strip_trailing_semicolon(code: str) -> str:
    return re.sub(r";\s*$", "", code.strip())


def remove_surrounding_block(code: str) -> str:
    """Strip one pair of braces wrapping the whole snippet."""
    stripped = code.strip()
    if stripped.startswith("{") and stripped.endswith("}"):
        return stripped[1:-1].strip()
    return stripped
