# correlate/utils/concept_catalog.py

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from correlate.utils.models import Concept, ClinicalExpression

logger = logging.getLogger(__name__)

Expander = Callable[[str], List[Concept]]

# Attribute ids
PROCEDURE_SITE = "363704007"
FINDING_SITE = "363698007"

TEETH_ECL = "<<38199008 MINUS <<410613002"
SURFACES_ECL = "<<245644000"
INITIAL_RESTORATION_ECL = (
    "<<234789004 |Insertion of composite restoration into tooth|:"
    "{cardinality}363704007 |Procedure site|=<<245644000 |Structure of single tooth surface|"
)

# option -> (ECL cardinality, label)
SURFACE_CARDINALITIES = {
    "1": ("[1..1]", "1 surface"),
    "2": ("[2..2]", "2 surfaces"),
    "3": ("[3..3]", "3 surfaces"),
    "4": ("[4..4]", "4 surfaces"),
    "5": ("[5..5]", "5 surfaces"),
    "all": ("[1..5]", "All"),
}


@dataclass
class Catalogs:
    teeth: Dict[str, Concept] = field(default_factory=dict)
    surfaces: Dict[str, Concept] = field(default_factory=dict)


def to_catalog(concepts: List[Concept]) -> Dict[str, Concept]:
    return {c.code: c for c in concepts}


def load_catalogs(expand: Expander) -> Catalogs:
    """
    Bootstraps the tooth and surface catalogs with one expansion each.
    """
    teeth = to_catalog(expand(TEETH_ECL))
    surfaces = to_catalog(expand(SURFACES_ECL))
    logger.info(f"Loaded {len(teeth)} tooth concepts and {len(surfaces)} surface concepts")
    return Catalogs(teeth=teeth, surfaces=surfaces)


def initial_restoration_ecl(option: str) -> str:
    if option not in SURFACE_CARDINALITIES:
        raise ValueError(f"Invalid selection of surface cardinality: {option}")
    cardinality, _ = SURFACE_CARDINALITIES[option]
    return INITIAL_RESTORATION_ECL.format(cardinality=cardinality)


def load_initial_expressions(expand: Expander, option: str = "all") -> List[ClinicalExpression]:
    """
    Expands the composite restoration constraint for the selected number of
    restored surfaces into the qualifying initial-treatment expressions.
    """
    concepts = expand(initial_restoration_ecl(option))
    expressions = [ClinicalExpression(c.code, c.description) for c in concepts]
    logger.info(f"Loaded {len(expressions)} initial restoration expressions ({SURFACE_CARDINALITIES[option][1]})")
    return expressions


def ask_surface_cardinality(input_fn=input, output_fn=print) -> str:
    """Prompt until a valid surface cardinality option is entered."""
    options = list(SURFACE_CARDINALITIES)
    for number, option in enumerate(options, 1):
        output_fn(f"{number} - {SURFACE_CARDINALITIES[option][1]}")

    while True:
        choice = input_fn("Enter the number of your choice: ").strip()
        if choice.isdigit() and 1 <= int(choice) <= len(options):
            option = options[int(choice) - 1]
            output_fn(f"You selected {choice} - {SURFACE_CARDINALITIES[option][0]}")
            return option
        output_fn("Invalid input. Please enter a valid number.")
