# manga_studio/errors.py
"""Domain errors. Routers translate these into HTTP responses."""


class MangaStudioError(Exception):
    """Base class for errors raised by the service layer."""


# -------------------------------------------------------------------
# Image provider (absorbed by the variation generator, never raised to callers)
# -------------------------------------------------------------------

class ProviderError(MangaStudioError):
    pass

class ProviderTransientError(ProviderError):
    """A single generate() call failed."""

class ProviderUnavailable(ProviderError):
    """No credential configured; the provider cannot be called at all."""


# -------------------------------------------------------------------
# Generation jobs
# -------------------------------------------------------------------

class OrchestrationFailure(MangaStudioError):
    """Unexpected error while running a generation job. Ends the job as failed."""

class InconsistentState(MangaStudioError):
    """An advance() that cannot be applied to the page's current job. Logged, not raised."""


# -------------------------------------------------------------------
# Lookups
# -------------------------------------------------------------------

class NotFound(MangaStudioError):
    pass

class ProjectNotFound(NotFound):
    def __init__(self, project_id: str):
        super().__init__(f"project {project_id} not found")
        self.project_id = project_id

class PageNotFound(NotFound):
    def __init__(self, page_id: str):
        super().__init__(f"page {page_id} not found")
        self.page_id = page_id


# -------------------------------------------------------------------
# Export
# -------------------------------------------------------------------

class ExportError(MangaStudioError):
    pass

class ExportWithNoSelections(ExportError):
    def __init__(self, project_id: str):
        super().__init__("No pages with selected images found")
        self.project_id = project_id

class InvalidExportFormat(ExportError):
    def __init__(self, fmt: str):
        super().__init__(f"Invalid export format: {fmt}")
        self.format = fmt
