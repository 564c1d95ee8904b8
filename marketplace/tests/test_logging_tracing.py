import logging

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider

from marketplace.common import ServiceSettings, build_app, configure_logging
from marketplace.common.tracing import _INSTRUMENTED_APPS, configure_tracing


@pytest.mark.usefixtures("caplog")
class TestTracingInstrumentation:
    def test_tracing_sets_provider_once(self, caplog: pytest.LogCaptureFixture) -> None:
        settings = ServiceSettings(
            enable_tracing=True,
            enable_metrics=False,
            app_name="Pricing Tracing Test",
        )
        configure_logging(settings)
        caplog.set_level(logging.WARNING)
        before = len(_INSTRUMENTED_APPS)
        app = build_app(settings)
        after_first = len(_INSTRUMENTED_APPS)
        assert after_first == before + 1
        configure_tracing(app, settings)
        assert len(_INSTRUMENTED_APPS) == after_first
        assert isinstance(trace.get_tracer_provider(), TracerProvider)

    def test_tracing_disabled_leaves_app_untouched(self) -> None:
        settings = ServiceSettings(enable_tracing=False, enable_metrics=False, app_name="Untraced")
        before = len(_INSTRUMENTED_APPS)
        build_app(settings)
        assert len(_INSTRUMENTED_APPS) == before

    def test_logging_injects_trace_identifiers(self, caplog: pytest.LogCaptureFixture) -> None:
        settings = ServiceSettings(
            enable_tracing=True,
            enable_metrics=False,
            app_name="Pricing Logging Test",
        )
        configure_logging(settings)
        build_app(settings)
        caplog.clear()
        tracer = trace.get_tracer(__name__)
        logger = logging.getLogger("pricing-trace-test")
        with caplog.at_level(logging.INFO):
            logger.info("outside span")
            outside_record = next(record for record in caplog.records if record.message == "outside span")
            assert getattr(outside_record, "trace_id", "-") == "-"
            assert getattr(outside_record, "span_id", "-") == "-"
            with tracer.start_as_current_span("quote"):
                logger.info("inside span")
        inside_record = next(record for record in caplog.records if record.message == "inside span")
        trace_id = getattr(inside_record, "trace_id", "-")
        span_id = getattr(inside_record, "span_id", "-")
        assert trace_id != "-"
        assert span_id != "-"
        assert len(trace_id) == 32
        assert len(span_id) == 16


def test_settings_read_service_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SERVICE_QUOTE_CACHE_TTL_SECONDS", "45")
    monkeypatch.setenv("SERVICE_DEFAULT_CURRENCY", "USD")
    monkeypatch.setenv("SERVICE_REDIS_URL", "redis://cache:6379/2")

    settings = ServiceSettings()

    assert settings.quote_cache_ttl_seconds == 45
    assert settings.default_currency == "USD"
    assert settings.redis_url == "redis://cache:6379/2"
