"""
Smoke tests to verify basic imports and functionality.
"""

import pytest


def test_import_finplanlab():
    """Test that we can import the main package."""
    import finplanlab

    assert hasattr(finplanlab, "__version__")
    assert finplanlab.__version__ == "0.1.0"


def test_import_core_components():
    """Test that core components can be imported."""
    from finplanlab import (
        Bucket,
        FinanceState,
        ProjectionConfig,
        ProjectionResult,
        build_audit_summary,
        generate_recommendations,
        project_timeline,
        validate_state,
    )

    assert FinanceState is not None
    assert ProjectionConfig is not None
    assert ProjectionResult is not None
    assert Bucket.NET_SAVINGS.value == "netSavings"
    assert callable(project_timeline)
    assert callable(validate_state)
    assert callable(build_audit_summary)
    assert callable(generate_recommendations)


def test_basic_projection():
    """Test that a small household projects end to end."""
    from finplanlab import FinanceState, project_timeline

    state = FinanceState.from_dict(
        {
            "profile": {"dob": "1996-01-01", "monthlyExpenses": 30000, "income": {"salary": 80000}},
            "assets": [{"id": "fd", "category": "Liquid", "currentValue": 200000, "growthRate": 6}],
            "goals": [
                {
                    "id": "car",
                    "startDate": {"type": "Year", "value": 2030},
                    "endDate": {"type": "Year", "value": 2030},
                    "targetAmountToday": 800000,
                }
            ],
        }
    )
    result = project_timeline(state, 2026)

    assert len(result) == 55
    assert result.row_for(2030).goals["car"] > 800000
    assert result.summary()["achievement_pct"] == pytest.approx(100.0)


def test_charts_optional():
    """Chart helpers are exported only when plotly is installed."""
    import finplanlab

    if finplanlab.CHARTS_AVAILABLE:
        assert "bucket_balances_over_time" in finplanlab.__all__
    else:
        assert "bucket_balances_over_time" not in finplanlab.__all__
