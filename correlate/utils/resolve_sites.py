# correlate/utils/resolve_sites.py

import re
from typing import Dict, List, Tuple

from correlate.utils.concept_catalog import PROCEDURE_SITE
from correlate.utils.models import ClinicalExpression, Concept, ProcedureSite

TERM_PATTERN = re.compile(r"\|[^|]*\|")


def _split_top_level(text: str, separator: str = ",") -> List[str]:
    """Split on separator, ignoring separators inside parentheses."""
    parts = []
    depth = 0
    current = []
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == separator and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


def parse_refinements(expression: str) -> List[Tuple[str, str]]:
    """
    Parses the refinement of a compositional expression into (attribute, value) pairs.

    Handles `focus:attr=value,attr=value`, role groups in braces, `|term|` labels
    and parenthesised nested expressions as values (their own refinements are
    included in the result, in order). Values that are not plain codes are skipped.

    Example:
        "234789004:{363704007=46320007,363704007=245651003}"
        -> [("363704007", "46320007"), ("363704007", "245651003")]
    """
    text = TERM_PATTERN.sub("", expression or "")
    text = text.replace("{", ",").replace("}", ",")

    _, sep, refinement = text.partition(":")
    if not sep:
        return []

    pairs = []
    for item in _split_top_level(refinement):
        attribute, eq, value = item.partition("=")
        if not eq:
            continue
        attribute = attribute.strip()
        value = value.strip()

        if value.startswith("(") and value.endswith(")"):
            pairs.extend(parse_refinements(value[1:-1]))
        elif attribute.isdigit() and value.isdigit():
            pairs.append((attribute, value))
    return pairs


def resolve_procedure_sites(expression: ClinicalExpression,
                            teeth: Dict[str, Concept],
                            surfaces: Dict[str, Concept]) -> List[ProcedureSite]:
    """
    Resolves the procedure sites referenced by the expression against the catalogs.

    A code found in both catalogs gives one site per role. Codes in neither
    catalog are ignored. Previously resolved sites are replaced.
    """
    expression.procedure_sites.clear()

    for attribute, code in parse_refinements(expression.expression):
        if attribute != PROCEDURE_SITE:
            continue
        if code in teeth:
            expression.procedure_sites.append(ProcedureSite(teeth[code], is_tooth=True))
        if code in surfaces:
            expression.procedure_sites.append(ProcedureSite(surfaces[code], is_surface=True))

    return expression.procedure_sites


def describe_sites(expression: ClinicalExpression) -> List[str]:
    """Human readable lines for the resolved sites, e.g. '* TOOTH 46320007 | ... |'."""
    lines = []
    for site in expression.procedure_sites:
        role = "SURFACE" if site.is_surface else "TOOTH"
        lines.append(f"* {role} {site.concept.code} | {site.concept.description or ''} |")
    return lines
