"""FastAPI dependency injection for shared application state."""

from ecmdiag.core.config import Settings
from ecmdiag.ecm.session import EcmSession


class AppState:
    """Holds shared application state instances.

    Created during app startup and accessed via FastAPI dependencies.
    """

    def __init__(self) -> None:
        self.settings: Settings | None = None
        self.session: EcmSession | None = None


# Global app state singleton
app_state = AppState()


def get_session() -> EcmSession:
    """Get the ECM session instance."""
    assert app_state.session is not None, "App not initialized"
    return app_state.session
