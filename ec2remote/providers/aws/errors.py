"""Translation of boto errors into ec2remote exceptions."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from ec2remote.providers.exceptions import (
    ExternalQueryFailed,
    ProviderCredentialsError,
)

logger = logging.getLogger(__name__)


@contextmanager
def handle_aws_errors(operation: str = "AWS request") -> Iterator[None]:
    """Convert boto exceptions raised inside the block.

    Parameters
    ----------
    operation : str
        Short description of the call, used in the error message

    Raises
    ------
    ProviderCredentialsError
        If boto could not locate credentials
    ExternalQueryFailed
        For any other botocore client or transport error
    """
    try:
        yield
    except NoCredentialsError as e:
        raise ProviderCredentialsError(
            f"{operation} failed: AWS credentials not found",
            error_code="NoCredentials",
        ) from e
    except ClientError as e:
        error = e.response.get("Error", {})
        error_code = error.get("Code")
        message = error.get("Message") or str(e)
        logger.debug("%s failed with %s: %s", operation, error_code, message)
        raise ExternalQueryFailed(
            f"{operation} failed ({error_code}): {message}", error_code=error_code
        ) from e
    except BotoCoreError as e:
        raise ExternalQueryFailed(f"{operation} failed: {e}") from e
