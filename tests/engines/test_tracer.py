"""Tests for the engine tracing decorator and input fingerprints."""

from decimal import Decimal

from purchasing_engines.allocation import distribute_global_paid
from purchasing_engines.tracer import compute_input_fingerprint, traced_engine
from tests.conftest import make_item


class TestInputFingerprint:

    def test_deterministic(self):
        args = {"target_paid": Decimal("90"), "items": (make_item("100"),)}
        fp1 = compute_input_fingerprint(("target_paid", "items"), args)
        fp2 = compute_input_fingerprint(("target_paid", "items"), args)
        assert fp1 == fp2
        assert len(fp1) == 16

    def test_decimal_scale_does_not_matter(self):
        fp1 = compute_input_fingerprint(("x",), {"x": Decimal("90")})
        fp2 = compute_input_fingerprint(("x",), {"x": Decimal("90.00")})
        assert fp1 == fp2

    def test_different_inputs_differ(self):
        fp1 = compute_input_fingerprint(("x",), {"x": Decimal("1")})
        fp2 = compute_input_fingerprint(("x",), {"x": Decimal("2")})
        assert fp1 != fp2

    def test_missing_field_is_null(self):
        assert compute_input_fingerprint(("x",), {}) == compute_input_fingerprint(
            ("x",), {"x": None}
        )


class TestTracedEngine:

    def test_wrapped_function_result_unchanged(self):
        @traced_engine("test.double", "1.0", fingerprint_fields=("value",))
        def double(value):
            return value * 2

        assert double(4) == 8
        assert double.__name__ == "double"

    def test_emits_trace_record(self, captured_logs):
        distribute_global_paid(Decimal("90"), [make_item("100"), make_item("200")])

        traces = [r for r in captured_logs() if r["message"] == "PURCHASING_ENGINE_TRACE"]
        assert len(traces) == 1
        assert traces[0]["engine_name"] == "allocation.global"
        assert traces[0]["engine_version"] == "1.0"
        assert traces[0]["input_fingerprint"]

    def test_positional_and_keyword_calls_share_fingerprint(self, captured_logs):
        items = [make_item("100")]
        distribute_global_paid(Decimal("10"), items)
        distribute_global_paid(target_paid=Decimal("10"), items=items)

        traces = [r for r in captured_logs() if r["message"] == "PURCHASING_ENGINE_TRACE"]
        assert traces[0]["input_fingerprint"] == traces[1]["input_fingerprint"]
