# correlate/utils/build_ecl.py

from correlate.utils.concept_catalog import FINDING_SITE
from correlate.utils.errors import MissingAnatomicalSiteError
from correlate.utils.models import ClinicalExpression

DENTAL_CARIES = "<<80967001 |Dental caries|"


def build_dental_caries_ecl(expression: ClinicalExpression) -> str:
    """
    Builds the constraint for any dental caries finding on the same tooth and
    any of the same surfaces as the resolved expression.

    The first tooth site is used. When no surfaces were resolved the surface
    clause is left out, which widens the search to the whole tooth.

    Raises:
        MissingAnatomicalSiteError: if the expression has no tooth site
    """
    teeth = expression.teeth
    if not teeth:
        raise MissingAnatomicalSiteError(expression.expression)

    ecl = f"{DENTAL_CARIES}:{FINDING_SITE} |Finding site|={teeth[0].concept.code}"

    surface_codes = [s.concept.code for s in expression.surfaces]
    if surface_codes:
        ecl += f",{FINDING_SITE} |Finding site|=({' OR '.join(surface_codes)})"

    return ecl
