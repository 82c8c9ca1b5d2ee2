"""Runtime settings for awssh"""
import datetime
import logging
import os

DEFAULT_REGION = 'eu-west-1'
REGION_ENV_VARS = ['AWS_DEFAULT_REGION', 'AWS_REGION']

# CloudWatch CPU queries look at this trailing window as a single period
CPU_WINDOW = datetime.timedelta(minutes=5)
CPU_PERIOD = 300

DEFAULT_SHELL = '/bin/bash'

LOG_FORMAT = '%(levelname)s: %(name)s: %(message)s'


def resolve_region(explicit: str = None, environ=None) -> str:
    """Pick the region from the command line, the environment or the default"""
    if explicit:
        return explicit
    if environ is None:
        environ = os.environ
    for var in REGION_ENV_VARS:
        value = environ.get(var)
        if value:
            return value
    return DEFAULT_REGION


def configure_logging(level: str = 'WARNING'):
    """Send the awssh logger to stderr at the given level"""
    logger = logging.getLogger('awssh')
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)
    # botocore is chatty at DEBUG, keep it one notch down
    logging.getLogger('botocore').setLevel(logging.INFO if level == 'DEBUG' else logging.WARNING)
    return logger
