import pytest

from correlate.utils.build_ecl import build_dental_caries_ecl
from correlate.utils.errors import MissingAnatomicalSiteError
from correlate.utils.models import ClinicalExpression, Concept, ProcedureSite
from correlate.utils.resolve_sites import resolve_procedure_sites

UPPER_RIGHT_MOLAR = "16"
LOWER_LEFT_MOLAR = "36"
OCCLUSAL = "245647007"
MESIAL = "245648002"


def test_tooth_and_surfaces(catalogs):
    expression = ClinicalExpression(
        f"234789004:363704007={UPPER_RIGHT_MOLAR},363704007={MESIAL},363704007={OCCLUSAL}")
    resolve_procedure_sites(expression, catalogs.teeth, catalogs.surfaces)

    assert build_dental_caries_ecl(expression) == (
        f"<<80967001 |Dental caries|:363698007 |Finding site|={UPPER_RIGHT_MOLAR},"
        f"363698007 |Finding site|=({MESIAL} OR {OCCLUSAL})"
    )


def test_single_surface(catalogs):
    expression = ClinicalExpression(f"234789004:363704007={OCCLUSAL},363704007={LOWER_LEFT_MOLAR}")
    resolve_procedure_sites(expression, catalogs.teeth, catalogs.surfaces)

    assert build_dental_caries_ecl(expression).endswith(
        f"={LOWER_LEFT_MOLAR},363698007 |Finding site|=({OCCLUSAL})")


def test_surface_clause_omitted_without_surfaces(catalogs):
    expression = ClinicalExpression(f"234789004:363704007={UPPER_RIGHT_MOLAR}")
    resolve_procedure_sites(expression, catalogs.teeth, catalogs.surfaces)

    assert build_dental_caries_ecl(expression) == \
        f"<<80967001 |Dental caries|:363698007 |Finding site|={UPPER_RIGHT_MOLAR}"


def test_first_tooth_is_used():
    expression = ClinicalExpression("234789004")
    expression.procedure_sites.extend([
        ProcedureSite(Concept(LOWER_LEFT_MOLAR), is_tooth=True),
        ProcedureSite(Concept(UPPER_RIGHT_MOLAR), is_tooth=True),
    ])

    assert f"|Finding site|={LOWER_LEFT_MOLAR}" in build_dental_caries_ecl(expression)
    assert UPPER_RIGHT_MOLAR not in build_dental_caries_ecl(expression)


@pytest.mark.parametrize("code", [
    "234789004",                           # no refinement at all
    f"234789004:363704007={OCCLUSAL}",     # surface only
    "234789004:363704007=999999",          # unknown site
])
def test_missing_tooth_raises(catalogs, code):
    expression = ClinicalExpression(code)
    resolve_procedure_sites(expression, catalogs.teeth, catalogs.surfaces)

    with pytest.raises(MissingAnatomicalSiteError) as excinfo:
        build_dental_caries_ecl(expression)
    assert excinfo.value.expression == code
