"""Errors raised by awssh"""


class AwsshError(Exception):
    """Base class for awssh errors"""


class ProviderError(AwsshError):
    """An AWS API call failed"""

    def __init__(self, action: str, cause: Exception):
        self.action = action
        self.cause = cause
        super().__init__('{}: {}'.format(action, cause))


class NoDatapoints(AwsshError):
    """CloudWatch returned no datapoints for a metric"""

    def __init__(self, metric_name: str, dimensions: list):
        self.metric_name = metric_name
        self.dimensions = dimensions
        dims = ', '.join('{}={}'.format(d['Name'], d['Value']) for d in dimensions)
        super().__init__('no datapoints found for metric {} with dimensions {}'.format(
            metric_name, dims))


class NothingFound(AwsshError):
    """A listing came back empty"""

    def __init__(self, level: str, scope: str = ''):
        self.level = level
        self.scope = scope
        message = 'No {}s found'.format(level)
        if scope:
            message = '{} {}'.format(message, scope)
        super().__init__(message)


class Cancelled(AwsshError):
    """The operator aborted a prompt"""


class LaunchFailed(AwsshError):
    """The session process could not be started"""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__('failed to start session: {}'.format(cause))


class SessionFailed(AwsshError):
    """The session process exited non-zero"""

    def __init__(self, exit_code: int):
        self.exit_code = exit_code
        super().__init__('session exited with code {}'.format(exit_code))
