"""Exceptions raised by the catalog, auth and import layers.

Routes in main.py translate these into HTTP responses.
"""


class PortfolioError(Exception):
    """Base class for expected, user-facing failures."""


class AuthenticationError(PortfolioError):
    pass


class ProjectNotFound(PortfolioError):
    def __init__(self, project_id: int):
        super().__init__(f"Project {project_id} not found")
        self.project_id = project_id


class UpstreamError(PortfolioError):
    """The GitHub API could not be reached or answered with an error."""


class ImportNotConfigured(PortfolioError):
    pass
