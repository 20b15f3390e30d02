"""
Unit tests for core.base_service module.

Tests:
- BaseServiceConfig defaults and validation
- Factory methods (from_yaml, from_dict)
- run_forever() cycling, shutdown and consecutive failure limit
- wait() interruptible sleep
- Context manager support (__aenter__/__aexit__)
"""

import asyncio
from unittest.mock import patch

import pytest
from pydantic import Field

from geofeed.core.base_service import BaseService, BaseServiceConfig


class ConcreteServiceConfig(BaseServiceConfig):
    """Test configuration inheriting from BaseServiceConfig."""

    label: str = Field(default="demo")


class ConcreteService(BaseService[ConcreteServiceConfig]):
    """Test implementation."""

    SERVICE_NAME = "test_service"
    CONFIG_CLASS = ConcreteServiceConfig

    def __init__(self, config: ConcreteServiceConfig | None = None, *, marker: str = ""):
        super().__init__(config)
        self.marker = marker
        self.run_count = 0
        self.should_fail = False

    async def run(self):
        self.run_count += 1
        if self.should_fail:
            raise RuntimeError("Simulated failure")


class TestBaseServiceConfig:
    """BaseServiceConfig defaults and validation."""

    def test_defaults(self):
        config = BaseServiceConfig()
        assert config.interval == 60.0
        assert config.max_consecutive_failures == 5
        assert config.metrics.enabled is False

    def test_interval_minimum(self):
        with pytest.raises(ValueError):
            BaseServiceConfig(interval=0.5)


class TestFactoryMethods:
    """BaseService factory methods."""

    def test_defaults_when_no_config(self):
        service = ConcreteService()
        assert service.config.label == "demo"

    def test_from_dict_passes_kwargs(self):
        service = ConcreteService.from_dict({"interval": 5, "label": "x"}, marker="m")
        assert service.config.interval == 5
        assert service.config.label == "x"
        assert service.marker == "m"

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "service.yaml"
        path.write_text("interval: 120\nlabel: from-yaml\n")
        service = ConcreteService.from_yaml(str(path))
        assert service.config.interval == 120
        assert service.config.label == "from-yaml"

    def test_from_yaml_file_not_found(self):
        with pytest.raises(FileNotFoundError):
            ConcreteService.from_yaml("/nonexistent/path/config.yaml")


class TestLifecycle:
    """Context manager, shutdown and wait()."""

    @pytest.mark.asyncio
    async def test_context_manager(self):
        service = ConcreteService()
        service.request_shutdown()
        async with service:
            assert service.is_running is True
        assert service.is_running is False

    @pytest.mark.asyncio
    async def test_wait_returns_true_on_shutdown(self):
        service = ConcreteService()

        async def stop_soon():
            await asyncio.sleep(0.01)
            service.request_shutdown()

        task = asyncio.create_task(stop_soon())
        assert await service.wait(timeout=1.0) is True
        await task

    @pytest.mark.asyncio
    async def test_wait_returns_false_on_timeout(self):
        assert await ConcreteService().wait(timeout=0.01) is False


class TestRunForever:
    """BaseService.run_forever()."""

    @pytest.mark.asyncio
    async def test_runs_until_shutdown(self):
        service = ConcreteService()

        async def mock_wait(timeout):
            return service.run_count >= 3

        with patch.object(service, "wait", mock_wait):
            await service.run_forever()
        assert service.run_count == 3

    @pytest.mark.asyncio
    async def test_stops_on_max_failures(self):
        service = ConcreteService(ConcreteServiceConfig(max_consecutive_failures=3))
        service.should_fail = True

        async def mock_wait(timeout):
            return False

        with patch.object(service, "wait", mock_wait):
            await service.run_forever()
        assert service.run_count == 3

    @pytest.mark.asyncio
    async def test_cancelled_error_propagates(self):
        service = ConcreteService()

        async def cancelled_run():
            raise asyncio.CancelledError

        with patch.object(service, "run", cancelled_run), pytest.raises(asyncio.CancelledError):
            await service.run_forever()
