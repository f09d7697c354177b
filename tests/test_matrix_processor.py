"""
Tests for the Matrix Builder.

Run with: python -m pytest tests/test_matrix_processor.py -v
"""

import numpy as np
import pandas as pd
import pytest
from scipy.sparse import csr_matrix

from econcomplex import InvalidInput, LabeledMatrix, ValueMatrix, build_value_matrix


class TestTableInput:
    """Tests for (country, product, value) tables."""

    def test_duplicates_are_summed(self):
        """Test that repeated pairs are aggregated by sum."""
        df = pd.DataFrame({
            "country": ["B", "A", "A", "B", "A"],
            "product": ["x", "x", "y", "y", "x"],
            "value": [1, 2, 3, 4, 5],
        })
        vm = build_value_matrix(df)

        assert vm.row_labels == ("A", "B")
        assert vm.col_labels == ("x", "y")
        np.testing.assert_array_equal(vm.toarray(), [[7, 3], [1, 4]])

    def test_missing_pairs_default_to_zero(self):
        df = pd.DataFrame({"country": ["A", "B"], "product": ["x", "y"], "value": [10, 10]})
        vm = build_value_matrix(df)

        np.testing.assert_array_equal(vm.toarray(), [[10, 0], [0, 10]])

    def test_custom_column_selectors(self):
        df = pd.DataFrame({"exporter": ["A", "B"], "hs": ["x", "x"], "usd": [1.5, 2.5]})
        vm = build_value_matrix(df, country="exporter", product="hs", value="usd")

        assert vm.shape == (2, 1)
        np.testing.assert_array_equal(vm.toarray(), [[1.5], [2.5]])

    def test_records_input(self):
        records = [("A", "x", 1), ("A", "x", 2), ("B", "y", 3)]
        vm = build_value_matrix(records)

        np.testing.assert_array_equal(vm.toarray(), [[3, 0], [0, 3]])

    def test_dict_records_input(self):
        records = [{"country": "A", "product": "x", "value": 4}]
        vm = build_value_matrix(records)

        assert vm.row_labels == ("A",)
        assert vm.toarray()[0, 0] == 4

    def test_nested_list_is_read_as_records(self):
        """Test that a three-wide nested list is a list of triples, not a matrix."""
        vm = build_value_matrix([[1, 2, 3], [4, 5, 6]])

        assert vm.row_labels == (1, 4)
        assert vm.col_labels == (2, 5)
        np.testing.assert_array_equal(vm.toarray(), [[3, 0], [0, 6]])

    def test_nested_array_is_read_as_matrix(self):
        vm = build_value_matrix(np.asarray([[1, 2, 3], [4, 5, 6]]))

        assert vm.shape == (2, 3)
        np.testing.assert_array_equal(vm.toarray(), [[1, 2, 3], [4, 5, 6]])

    def test_missing_column(self):
        df = pd.DataFrame({"country": ["A"], "product": ["x"]})
        with pytest.raises(InvalidInput):
            build_value_matrix(df)

    def test_non_numeric_value(self):
        df = pd.DataFrame({"country": ["A"], "product": ["x"], "value": ["ten"]})
        with pytest.raises(InvalidInput):
            build_value_matrix(df)

    def test_negative_value(self):
        df = pd.DataFrame({"country": ["A"], "product": ["x"], "value": [-1.0]})
        with pytest.raises(InvalidInput):
            build_value_matrix(df)

    def test_selectors_must_be_strings(self):
        df = pd.DataFrame({"country": ["A"], "product": ["x"], "value": [1.0]})
        with pytest.raises(InvalidInput):
            build_value_matrix(df, country=1)


class TestMatrixInput:
    """Tests for dense and sparse matrices."""

    def test_dense_default_labels(self):
        vm = build_value_matrix(np.array([[1, 0, 2], [0, 0, 3]]))

        assert vm.row_labels == (0, 1)
        assert vm.col_labels == (0, 1, 2)
        assert vm.nnz == 3

    def test_sparse_with_labels(self):
        mat = csr_matrix(np.array([[1.0, 0.0], [0.0, 2.0]]))
        vm = build_value_matrix(mat, row_labels=["A", "B"], col_labels=["x", "y"])

        assert vm.to_frame().loc["B", "y"] == 2.0

    def test_label_mismatch(self):
        with pytest.raises(InvalidInput):
            build_value_matrix(np.ones((2, 2)), row_labels=["A"])

    def test_not_two_dimensional(self):
        with pytest.raises(InvalidInput):
            build_value_matrix(np.ones(3))

    @pytest.mark.parametrize("data", ["country,product,value", 5, {"A": 1}, None])
    def test_unsupported_container(self, data):
        with pytest.raises(InvalidInput):
            build_value_matrix(data)

    def test_from_frame(self):
        df = pd.DataFrame([[1, 2], [3, 4]], index=["A", "B"], columns=["x", "y"])
        lm = LabeledMatrix.from_frame(df)

        assert lm.row_labels == ("A", "B")
        pd.testing.assert_frame_equal(lm.to_frame(), df.astype(float))


class TestRoundTrip:
    """Tests for idempotent aggregation."""

    def test_value_matrix_is_idempotent(self, trade_table):
        vm = build_value_matrix(trade_table)
        again = build_value_matrix(vm)

        assert isinstance(again, ValueMatrix)
        assert again.equals(vm)

    def test_records_round_trip(self, trade_table):
        vm = build_value_matrix(trade_table)
        again = build_value_matrix(vm.to_records())

        assert again.equals(vm)

    def test_input_matrix_not_shared(self):
        mat = csr_matrix(np.array([[1.0, 2.0]]))
        vm = build_value_matrix(mat)
        mat.data[:] = 0

        np.testing.assert_array_equal(vm.toarray(), [[1.0, 2.0]])
