"""
Tests for productivity levels.

Run with: python -m pytest tests/test_productivity.py -v
"""

import numpy as np
import pandas as pd
import pytest

from econcomplex import InvalidInput, productivity_levels


class TestProductivityLevels:
    """Tests for productivity_levels()."""

    def test_known_values(self):
        df = pd.DataFrame({
            "country": ["A", "B", "B"],
            "product": ["x", "x", "y"],
            "value": [10.0, 5.0, 5.0],
        })
        gdp = pd.Series({"A": 100.0, "B": 50.0})

        result = productivity_levels(df, gdp)

        assert result.productivity_level_product["x"] == pytest.approx(125.0 / 1.5)
        assert result.productivity_level_product["y"] == pytest.approx(50.0)
        assert result.productivity_level_country["A"] == pytest.approx(125.0 / 1.5)
        assert result.productivity_level_country["B"] == pytest.approx(0.5 * 125.0 / 1.5 + 25.0)

    def test_extra_countries_in_gdp_are_ignored(self):
        result = productivity_levels(np.array([[1.0, 1.0]]), pd.Series({0: 10.0, 1: 20.0}))

        np.testing.assert_allclose(result.productivity_level_product.to_numpy(), [10.0, 10.0])

    def test_missing_gdp(self):
        with pytest.raises(InvalidInput):
            productivity_levels(np.ones((2, 2)), pd.Series({0: 1.0}))

    def test_gdp_must_be_series(self):
        with pytest.raises(InvalidInput):
            productivity_levels(np.ones((2, 2)), [1.0, 2.0])

    def test_non_numeric_gdp(self):
        with pytest.raises(InvalidInput):
            productivity_levels(np.ones((1, 2)), pd.Series({0: "rich"}))
