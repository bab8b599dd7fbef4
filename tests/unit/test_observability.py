"""Testes de logging estruturado, correlação e latência."""

from __future__ import annotations

import io
import json
import logging

import pytest

from remote_signer.observability.context import correlation_scope, get_correlation_id
from remote_signer.observability.logging import (
    CorrelationIdFilter,
    configure_logging,
    get_logger,
    key_prefix,
)
from remote_signer.observability.timing import timed


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


class TestCorrelationScope:
    def test_scope_sets_and_resets(self) -> None:
        """correlation_scope define e restaura o id."""
        assert get_correlation_id() == ""

        with correlation_scope("req-1") as value:
            assert value == "req-1"
            assert get_correlation_id() == "req-1"

        assert get_correlation_id() == ""

    def test_nested_scopes(self) -> None:
        """Escopos aninhados restauram o externo."""
        with correlation_scope("outer"):
            with correlation_scope("inner"):
                assert get_correlation_id() == "inner"
            assert get_correlation_id() == "outer"


class TestCorrelationIdFilter:
    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_injects_context_id_and_service(self) -> None:
        """Filtro injeta correlation_id do contexto e service."""
        record = self._record()

        with correlation_scope("req-9"):
            assert CorrelationIdFilter("svc").filter(record) is True

        assert record.correlation_id == "req-9"
        assert record.service == "svc"

    def test_explicit_correlation_id_wins(self) -> None:
        """correlation_id explícito no extra prevalece."""
        record = self._record(correlation_id="explicit")

        with correlation_scope("ctx"):
            CorrelationIdFilter("svc").filter(record)

        assert record.correlation_id == "explicit"


class TestConfigureLogging:
    def test_json_output_contains_standard_fields(self, restore_root_logger) -> None:
        """Saída JSON traz os campos padrão e o extra."""
        configure_logging("INFO", "remote_signer_test")
        stream = io.StringIO()
        restore_root_logger.handlers[0].setStream(stream)

        with correlation_scope("req-42"):
            get_logger("remote_signer.test").info("hello", extra={"relay_count": 2})

        payload = json.loads(stream.getvalue().strip())
        assert payload["message"] == "hello"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "remote_signer.test"
        assert payload["correlation_id"] == "req-42"
        assert payload["service"] == "remote_signer_test"
        assert payload["relay_count"] == 2

    def test_text_format(self, restore_root_logger) -> None:
        """Formato text gera linha legível."""
        configure_logging("DEBUG", "svc", log_format="text")
        stream = io.StringIO()
        restore_root_logger.handlers[0].setStream(stream)

        get_logger("remote_signer.test").debug("plain")

        line = stream.getvalue()
        assert "DEBUG" in line
        assert "plain" in line

    def test_replaces_existing_handlers(self, restore_root_logger) -> None:
        """Reconfigurar mantém um único handler."""
        configure_logging("INFO", "svc")
        configure_logging("INFO", "svc")

        assert len(restore_root_logger.handlers) == 1


class TestKeyPrefix:
    def test_truncates_key(self) -> None:
        """key_prefix mostra só os 8 primeiros chars."""
        assert key_prefix("abcdef0123456789" * 4) == "abcdef01..."

    @pytest.mark.parametrize("value", ["", None])
    def test_empty_values(self, value) -> None:
        """Chave vazia ou ausente vira None."""
        assert key_prefix(value) is None


class TestTimed:
    def test_logs_latency(self, caplog: pytest.LogCaptureFixture) -> None:
        """timed registra component_latency com os campos."""
        with caplog.at_level(logging.INFO, logger="remote_signer.observability.timing"):
            with timed("rpc", rpc_method="sign_event"):
                pass

        record = next(r for r in caplog.records if r.getMessage() == "component_latency")
        assert record.component == "rpc"
        assert record.rpc_method == "sign_event"
        assert record.elapsed_ms >= 0

    def test_logs_even_when_block_raises(self, caplog: pytest.LogCaptureFixture) -> None:
        """timed registra latência mesmo com exceção."""
        with caplog.at_level(logging.INFO, logger="remote_signer.observability.timing"):
            with pytest.raises(RuntimeError):
                with timed("rpc"):
                    raise RuntimeError("boom")

        assert any(r.getMessage() == "component_latency" for r in caplog.records)
