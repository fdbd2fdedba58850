"""
Fatal analysis errors. Anything raised from here ends the request without
a report; degraded stages never raise these.
"""


class AnalysisError(Exception):
    """Base class for errors that abort an analysis."""

    kind = "analysis_error"
    default_message = "An error occurred during analysis"

    def __init__(self, message: str = None, *, cause: str = None):
        self.message = message or self.default_message
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "kind": self.kind, "error": self.message}


class InvalidURLError(AnalysisError):
    kind = "invalid_url"
    default_message = "Please enter a valid URL starting with http:// or https://"


class RenderError(AnalysisError):
    kind = "render_engine"
    default_message = "The page could not be rendered. Please try again later."


class NavigationError(RenderError):
    kind = "page_unreachable"
    default_message = "Failed to load the webpage. Please check the URL and try again."


class BrowserLaunchError(RenderError):
    kind = "render_engine"
    default_message = "Failed to launch browser. Please try again later."
