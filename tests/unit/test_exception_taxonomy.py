"""Tests for the unified exception taxonomy.

Validates:
- PipelineError hierarchy and structured attributes
- Category classification (input, transient, permanent, critical)
- ``to_error_dict()`` produces stable payload keys
- All activity and store exceptions are PipelineError subclasses
"""

from __future__ import annotations

from typing import ClassVar

from geosparql_loader.activities.classify_features import HazardClassificationError
from geosparql_loader.activities.generate_triples import TripleGenerationError
from geosparql_loader.activities.read_features import FeatureReadError
from geosparql_loader.core.config import ConfigValidationError
from geosparql_loader.core.exceptions import CriticalError, InputError, PipelineError
from geosparql_loader.models.load import ModelValidationError
from geosparql_loader.models.summary import PipelineSummary
from geosparql_loader.orchestrators.pipeline import (
    LoadAbortedError,
    PipelineFailedError,
    StoreUnavailableError,
)
from geosparql_loader.store.errors import StoreRequestError
from geosparql_loader.store.targets import StoreTargetError


class TestPipelineErrorBase:
    """PipelineError base class behaviour."""

    def test_default_attributes(self) -> None:
        err = PipelineError("boom")
        assert err.message == "boom"
        assert err.stage == ""
        assert err.code == ""
        assert err.retryable is False
        assert err.critical is False
        assert err.correlation_id == ""

    def test_custom_attributes(self) -> None:
        err = PipelineError(
            "fail",
            stage="load_triples",
            code="STORE_REQUEST_FAILED",
            retryable=True,
            correlation_id="run-42",
        )
        assert err.stage == "load_triples"
        assert err.code == "STORE_REQUEST_FAILED"
        assert err.retryable is True
        assert err.correlation_id == "run-42"

    def test_str_is_message(self) -> None:
        assert str(PipelineError("readable")) == "readable"


class TestCategories:
    """Each category base class maps to one category string."""

    def test_input(self) -> None:
        assert InputError("x").category == "input"
        assert InputError("x").retryable is False

    def test_critical(self) -> None:
        err = CriticalError("x")
        assert err.category == "critical"
        assert err.critical is True
        assert err.retryable is False

    def test_base_falls_back_on_flags(self) -> None:
        assert PipelineError("x", retryable=True).category == "transient"
        assert PipelineError("x").category == "permanent"
        assert PipelineError("x", critical=True).category == "critical"


class TestErrorDict:
    EXPECTED_KEYS: ClassVar[set[str]] = {
        "category",
        "code",
        "stage",
        "message",
        "retryable",
        "critical",
        "correlation_id",
    }

    def test_stable_keys(self) -> None:
        assert set(PipelineError("x").to_error_dict()) == self.EXPECTED_KEYS

    def test_store_error_payload(self) -> None:
        payload = StoreRequestError("HTTP 503 Service Unavailable", status_code=503).to_error_dict()
        assert payload["category"] == "transient"
        assert payload["stage"] == "load_triples"
        assert payload["code"] == "STORE_REQUEST_FAILED"
        assert payload["retryable"] is True


class TestConcreteErrors:
    """Every domain exception sits in the taxonomy."""

    def test_input_defects(self) -> None:
        for exc_type in (HazardClassificationError, TripleGenerationError, FeatureReadError):
            err = exc_type("bad feature")
            assert isinstance(err, InputError)
            assert err.category == "input"

    def test_config_error(self) -> None:
        err = ConfigValidationError("BATCH_SIZE", 0, "must be > 0")
        assert isinstance(err, PipelineError)
        assert err.stage == "config"

    def test_model_validation_error_is_value_error(self) -> None:
        err = ModelValidationError("BatchResult", "attempts", -1, "must be >= 0")
        assert isinstance(err, ValueError)
        assert isinstance(err, PipelineError)
        assert "BatchResult.attempts=-1" in str(err)

    def test_store_target_error(self) -> None:
        assert StoreTargetError("x").code == "STORE_TARGET_INVALID"

    def test_critical_orchestration_errors(self) -> None:
        aborted = LoadAbortedError("stop", restart_skip_features=7, summary=PipelineSummary())
        assert aborted.critical is True
        assert aborted.restart_skip_features == 7
        assert StoreUnavailableError("down").category == "critical"

    def test_load_abort_is_a_pipeline_failure(self) -> None:
        aborted = LoadAbortedError(
            "stop", restart_skip_features=3, summary=PipelineSummary(), correlation_id="a.geojson"
        )
        assert isinstance(aborted, PipelineFailedError)
        payload = aborted.to_error_dict()
        assert payload["code"] == "LOAD_ABORTED"
        assert payload["correlation_id"] == "a.geojson"
        assert PipelineFailedError(
            "x", restart_skip_features=None, summary=PipelineSummary()
        ).code == "PIPELINE_FAILED"
