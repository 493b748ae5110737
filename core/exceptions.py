"""Custom exceptions for Data Detective"""


class DetectiveError(Exception):
    """Base exception for all Data Detective errors"""
    pass


class FileParseError(DetectiveError):
    """Error parsing a source"""
    def __init__(self, message: str, source_name: str = None):
        super().__init__(message)
        self.source_name = source_name


class UnsupportedFormatError(FileParseError):
    """Source extension/MIME type is not a supported format"""
    def __init__(self, message: str, source_name: str = None, detected: str = None):
        super().__init__(message, source_name)
        self.detected = detected


class MalformedSourceError(FileParseError):
    """Source content cannot be decoded under its detected format"""
    def __init__(self, message: str, source_name: str = None, file_type: str = None):
        super().__init__(message, source_name)
        self.file_type = file_type


class PipelineError(DetectiveError):
    """Error in ingestion pipeline bookkeeping"""
    def __init__(self, message: str, source_id: str = None):
        super().__init__(message)
        self.source_id = source_id


class ConnectorNotImplementedError(DetectiveError):
    """External connector has no protocol implementation"""
    def __init__(self, connector: str):
        super().__init__(f"Connector '{connector}' is not implemented")
        self.connector = connector


class InvalidContextError(DetectiveError):
    """Analysis context violates its invariants"""
    pass


class EngineError(DetectiveError):
    """Failure inside the external analysis engine"""
    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class LLMError(DetectiveError):
    """Error in LLM communication"""
    def __init__(self, message: str, provider: str = None, retries: int = 0):
        super().__init__(message)
        self.provider = provider
        self.retries = retries


class PersistenceError(DetectiveError):
    """Project save/load failure"""
    pass
