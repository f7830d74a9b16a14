"""
tklib.errors: Exception hierarchy shared by every toolkit entry point.

Uses only stdlib so the installer can raise and catch these before boto3 is
installed.
"""


class ToolkitError(Exception):
    """Base class for errors reported by the toolkit."""


class PrerequisiteError(ToolkitError):
    """A required tool, package or credential is missing."""


class AwsOperationError(ToolkitError):
    """
    A call to AWS failed.

    Attributes:
        operation: Human-readable operation name (e.g. "s3.upload_file")
        code: AWS error code, or the exception class name for SDK errors
        message: Error message from AWS / botocore
    """

    def __init__(self, operation: str, code: str, message: str):
        self.operation = operation
        self.code = code
        self.message = message
        super().__init__(f"{operation}: [{code}] {message}")

    @property
    def detail(self) -> str:
        return f"[{self.code}] {self.message}"


class CredentialsError(AwsOperationError):
    """AWS rejected, or could not find, the configured credentials."""
