from nowgame.core.infra.application_context import ApplicationContext

__all__ = ["ApplicationContext"]
