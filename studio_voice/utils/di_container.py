"""
Dependency Injection Container.

Wires the lesson store, circuit breaker, executor and controller
for the command-line driver.
"""

import logging
from datetime import timedelta
from typing import Dict, Type, Callable, Any


logger = logging.getLogger(__name__)


class DIContainer:
    """
    Simple dependency injection container.

    Supports:
    - Service registration with factory functions
    - Singleton pattern for shared instances
    - Clear error messages for missing services

    Examples:
        >>> container = DIContainer()
        >>> container.register(Config, lambda: Config(), singleton=True)
        >>> config = container.resolve(Config)
    """

    def __init__(self):
        """Initialize empty container."""
        self._services: Dict[Type, Callable] = {}
        self._singletons: Dict[Type, Any] = {}
        self._singleton_flags: Dict[Type, bool] = {}

        logger.debug("DI Container initialized")

    def register(
        self,
        interface: Type,
        implementation: Callable,
        singleton: bool = False
    ):
        """
        Register a service in the container.

        Args:
            interface: Service interface or type
            implementation: Factory function that creates the service
            singleton: Whether to create a single shared instance
        """
        self._services[interface] = implementation
        self._singleton_flags[interface] = singleton

        if singleton:
            self._singletons[interface] = None  # Lazy initialization

        logger.debug(
            f"Registered service: {interface.__name__} "
            f"(singleton={singleton})"
        )

    def resolve(self, interface: Type) -> Any:
        """
        Resolve a service from the container.

        Args:
            interface: Service interface or type to resolve

        Returns:
            Service instance

        Raises:
            ValueError: If service is not registered
        """
        if interface not in self._services:
            raise ValueError(
                f"Service not registered: {interface.__name__}. "
                f"Available services: {', '.join(s.__name__ for s in self._services.keys())}"
            )

        if self._singleton_flags.get(interface, False):
            if self._singletons[interface] is None:
                logger.debug(f"Creating singleton instance: {interface.__name__}")
                self._singletons[interface] = self._services[interface]()
            return self._singletons[interface]

        logger.debug(f"Creating transient instance: {interface.__name__}")
        return self._services[interface]()

    def is_registered(self, interface: Type) -> bool:
        return interface in self._services

    def clear(self):
        """Clear all registered services."""
        self._services.clear()
        self._singletons.clear()
        self._singleton_flags.clear()
        logger.debug("DI Container cleared")

    def get_registered_services(self) -> list:
        return [service.__name__ for service in self._services.keys()]


def configure_voice_services(container: DIContainer, store, app_config=None):
    """
    Register the voice pipeline around a lesson store.

    Args:
        container: DI container to configure
        store: LessonStore implementation to execute against
        app_config: Config instance (defaults to the module singleton)

    Examples:
        >>> container = DIContainer()
        >>> configure_voice_services(container, InMemoryLessonStore())
        >>> controller = container.resolve(VoiceCommandController)
    """
    from .config import Config, config
    from ..persistence.interfaces import LessonStore
    from ..resilience.circuit_breaker import CircuitBreaker
    from ..voice.controller import VoiceCommandController
    from ..voice.executor import VoiceCommandExecutor

    cfg = app_config or config

    container.register(Config, lambda: cfg, singleton=True)
    container.register(LessonStore, lambda: store, singleton=True)

    container.register(
        CircuitBreaker,
        lambda: CircuitBreaker(
            failure_threshold=cfg.store_failure_threshold,
            timeout=timedelta(seconds=cfg.store_retry_seconds),
            expected_exception=Exception
        ),
        singleton=True
    )

    container.register(
        VoiceCommandExecutor,
        lambda: VoiceCommandExecutor(
            container.resolve(LessonStore),
            circuit_breaker=container.resolve(CircuitBreaker)
        ),
        singleton=True
    )

    container.register(
        VoiceCommandController,
        lambda: VoiceCommandController(
            container.resolve(LessonStore),
            executor=container.resolve(VoiceCommandExecutor),
            confidence_threshold=cfg.confidence_threshold,
            fuzzy_threshold=cfg.fuzzy_threshold,
            ambiguity_margin=cfg.ambiguity_margin,
            pending_ttl=timedelta(seconds=cfg.pending_ttl_seconds)
        ),
        singleton=True
    )

    logger.info("Voice services configured")
