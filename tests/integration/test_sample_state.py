"""
The bundled example household loads, validates and projects.
"""

from pathlib import Path

import pytest

from finplanlab import load_finance_state, project_timeline, validate_state
from finplanlab.core.amortization import infer_tenure_months
from finplanlab.core.kinds import Bucket, TenureBasis

SAMPLE = Path(__file__).resolve().parents[2] / "examples" / "sample_state.yaml"


@pytest.fixture(scope="module")
def state():
    loaded = load_finance_state(SAMPLE)
    assert loaded is not None
    return loaded


def test_sample_state_is_valid(state):
    report = validate_state(state, 2026)
    assert report.errors == []


def test_sample_loan_tenure_read_as_years(state):
    inference = infer_tenure_months(state.loans[0])
    assert inference.basis is TenureBasis.YEARS
    assert inference.months == 17 * 12


def test_sample_projection(state):
    result = project_timeline(state, 2026)
    assert result[0].year == 2027
    assert result[-1].year == 1988 + 85
    # The plot only vests in its available-from year
    assert result.row_for(2034).vested.get(Bucket.REAL_ESTATE, 0.0) == 0.0
    assert result.row_for(2035).vested[Bucket.REAL_ESTATE] > 3_500_000
    # The car bridge loan is not applied to a recurring goal
    assert result.row_for(2029).goals["car"] > 1_200_000
