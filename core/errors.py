"""Error taxonomy shared by all pipeline stages"""


class PipelineError(Exception):
    """Base error for pipeline stages"""
    def __init__(self, message: str, code: str = "PIPELINE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ConfigurationError(PipelineError):
    """Missing credentials or configuration; aborts the run before any write"""
    def __init__(self, message: str, code: str = "CONFIGURATION_MISSING"):
        super().__init__(message, code)


class ExternalFetchFailure(PipelineError):
    """A single video, channel or keyword lookup failed upstream"""
    def __init__(self, message: str, code: str = "EXTERNAL_FETCH_FAILED"):
        super().__init__(message, code)


class PersistenceFailure(PipelineError):
    """A single row could not be written"""
    def __init__(self, message: str, code: str = "PERSISTENCE_FAILED"):
        super().__init__(message, code)
