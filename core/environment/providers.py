from dishka import Provider, Scope, provide
from core.environment.config import Settings


class EnvironmentProvider(Provider):
    """
    Provider for environment configuration.
    """

    component = "environment"
    scope = Scope.APP

    @provide
    def get_environment(self) -> Settings:
        """
        Provide exporter settings, read once for the process lifetime.

        Returns
        -------
        Settings
            Exporter settings instance
        """
        return Settings()
