"""Interactive AWS CLI sessions with Ctrl-C relayed to the child"""
import contextlib
import logging
import signal
import subprocess

from aws_config import DEFAULT_SHELL
from aws_errors import LaunchFailed, SessionFailed

logger = logging.getLogger('awssh.session')

IDLE = 'idle'
STARTING = 'starting'
RUNNING = 'running'
EXITED = 'exited'
LAUNCH_FAILED = 'launch_failed'


def ecs_exec_command(cluster: str, task: str, container: str, region: str,
                     command: str = DEFAULT_SHELL) -> list:
    """argv for an ECS Exec session, flag order as the AWS CLI expects"""
    return [
        'aws', 'ecs', 'execute-command',
        '--cluster', cluster,
        '--task', task,
        '--container', container,
        '--interactive',
        '--command', command,
        '--region', region,
    ]


def ssm_session_command(instance_id: str) -> list:
    """argv for an SSM session"""
    return ['aws', 'ssm', 'start-session', '--target', instance_id]


def exit_code(returncode: int) -> int:
    """Shell style exit code, a child killed by signal N becomes 128 + N"""
    if returncode < 0:
        return 128 - returncode
    return returncode


@contextlib.contextmanager
def forward_signals(session, signals=(signal.SIGINT,)):
    """Relay signals to the session's running child instead of acting on them here

    The handlers go in before the child is spawned, a signal arriving while
    there is no child yet is dropped. The previous handlers are put back on
    the way out, however the block ends.
    """
    def _forward(signum, frame):
        process = session.process
        if process is None:
            logger.debug('Dropping signal %s, no child yet', signum)
        elif process.poll() is None:
            logger.debug('Forwarding signal %s to pid %s', signum, process.pid)
            process.send_signal(signum)

    previous = {}
    try:
        for sig in signals:
            previous[sig] = signal.signal(sig, _forward)
        yield session
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


class Session():
    """One external session process, run to completion"""

    def __init__(self, argv: list, popen=subprocess.Popen):
        self.argv = argv
        self.popen = popen
        self.state = IDLE
        self.process = None
        self.returncode = None

    def run(self) -> int:
        """Start the child on this terminal and block until it exits"""
        self.state = STARTING
        logger.debug('Running: %s', self.argv)
        with forward_signals(self):
            try:
                # stdin, stdout and stderr are inherited from this terminal
                self.process = self.popen(self.argv)
            except OSError as err:
                self.state = LAUNCH_FAILED
                raise LaunchFailed(err) from err
            self.state = RUNNING
            returncode = self.process.wait()
        self.state = EXITED
        self.returncode = exit_code(returncode)
        if self.returncode != 0:
            raise SessionFailed(self.returncode)
        return self.returncode


def launch(argv: list, popen=subprocess.Popen) -> int:
    """Run a session process, raising SessionFailed or LaunchFailed"""
    return Session(argv, popen).run()
