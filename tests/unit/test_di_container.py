"""
Unit tests for the dependency injection container and voice wiring.
"""

from datetime import timedelta
from unittest.mock import Mock

import pytest

from studio_voice.persistence.interfaces import LessonStore
from studio_voice.persistence.memory_store import InMemoryLessonStore
from studio_voice.resilience.circuit_breaker import CircuitBreaker
from studio_voice.utils.config import Config
from studio_voice.utils.di_container import DIContainer, configure_voice_services
from studio_voice.voice.controller import VoiceCommandController
from studio_voice.voice.executor import VoiceCommandExecutor


class Service:
    pass


class TestDIContainer:
    """Test cases for DIContainer."""

    def test_transient_creates_new_instances(self):
        container = DIContainer()
        container.register(Service, Service)

        assert container.resolve(Service) is not container.resolve(Service)

    def test_singleton_is_shared_and_lazy(self):
        factory = Mock(side_effect=Service)
        container = DIContainer()
        container.register(Service, factory, singleton=True)

        factory.assert_not_called()
        assert container.resolve(Service) is container.resolve(Service)
        factory.assert_called_once()

    def test_unregistered_service_raises(self):
        container = DIContainer()
        container.register(Service, Service)

        with pytest.raises(ValueError, match="Service not registered: Config"):
            container.resolve(Config)

    def test_clear(self):
        container = DIContainer()
        container.register(Service, Service)
        container.clear()

        assert not container.is_registered(Service)
        assert container.get_registered_services() == []


class TestConfigureVoiceServices:
    """Test cases for configure_voice_services."""

    @pytest.fixture
    def app_config(self):
        config = Mock(spec=Config)
        config.confidence_threshold = 0.8
        config.fuzzy_threshold = 0.65
        config.ambiguity_margin = 0.05
        config.pending_ttl_seconds = 120
        config.store_failure_threshold = 4
        config.store_retry_seconds = 10
        return config

    def test_controller_is_wired_from_config(self, app_config):
        store = InMemoryLessonStore()
        container = DIContainer()
        configure_voice_services(container, store, app_config)

        controller = container.resolve(VoiceCommandController)

        assert controller.store is store
        assert controller.confidence_threshold == 0.8
        assert controller.fuzzy_threshold == 0.65
        assert controller.ambiguity_margin == 0.05
        assert controller.pending_ttl == timedelta(seconds=120)
        assert controller.executor is container.resolve(VoiceCommandExecutor)

    def test_executor_shares_breaker_and_store(self, app_config):
        store = InMemoryLessonStore()
        container = DIContainer()
        configure_voice_services(container, store, app_config)

        executor = container.resolve(VoiceCommandExecutor)
        breaker = container.resolve(CircuitBreaker)

        assert executor.store is container.resolve(LessonStore)
        assert executor.circuit_breaker is breaker
        assert breaker.failure_threshold == 4
        assert breaker.timeout == timedelta(seconds=10)

    def test_breaker_counts_any_store_error(self, app_config):
        container = DIContainer()
        configure_voice_services(container, InMemoryLessonStore(), app_config)
        breaker = container.resolve(CircuitBreaker)

        with pytest.raises(ConnectionError):
            breaker.call(Mock(side_effect=ConnectionError("socket reset")))

        assert breaker.failure_count == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
