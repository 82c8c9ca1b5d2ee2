"""
Browse AWS resources through searchable menus and open ECS Exec or SSM sessions

Region comes from --region, AWS_DEFAULT_REGION or AWS_REGION, else eu-west-1.
API calls and prompts have no timeout, they wait as long as AWS or the
operator take.
"""
import argparse
import sys

from aws_config import DEFAULT_SHELL, configure_logging, resolve_region
from aws_errors import AwsshError, Cancelled, NothingFound, SessionFailed
from aws_functions import AwsFunctions, Resource, cpu_gaps
from aws_menu import Level, Selector, chosen, run_cascade
from aws_session import ecs_exec_command, launch, ssm_session_command

METRIC_POLICY = """\
CPU averages cover the last 5 minutes. A resource with no CloudWatch
datapoints is still listed with "no data" and named in a warning; it never
aborts the command."""


def format_cpu(cpu) -> str:
    """CPU column text, missing data is not zero"""
    if cpu is None:
        return 'no data'
    return '{:.1f}%'.format(cpu)


class AwsShell(AwsFunctions):
    """Menu driven front end over the AWS lookups"""

    def __init__(self, region: str, selector: Selector = None, session=None, launcher=launch):
        super().__init__(region, session)
        self.selector = selector or Selector()
        self.launcher = launcher

    def _log(self, message, error=False):
        """Print for the operator, errors to stderr"""
        print(message, file=sys.stderr if error else sys.stdout)
        return

    def _warn_gaps(self, summaries, kind: str):
        """One warning line for every resource that had no CPU datapoints"""
        missing = cpu_gaps(summaries)
        if missing:
            self._log('Warning: No datapoints found for the following {}: {}'.format(
                kind, ', '.join(missing)))
        return

    def ecs_levels(self) -> list:
        """cluster -> service -> task -> container"""
        return [
            Level('cluster', 'Select a cluster:', lambda state: self.list_clusters()),
            Level('service', 'Select a service:',
                  lambda state: self.list_services(chosen(state, 'cluster').id)),
            Level('task', 'Select a task:',
                  lambda state: self.list_tasks(chosen(state, 'cluster').id,
                                                chosen(state, 'service').id)),
            Level('container', 'Select a container:', self._container_resources),
        ]

    def _container_resources(self, state):
        """Containers of the chosen task as menu entries"""
        containers = self.list_containers(chosen(state, 'cluster').id, chosen(state, 'task').id)
        return [Resource(c.name, c.name) for c in containers]

    def ecs(self, describe_cluster=False, describe_service=False, task_definition=False,
            shell: str = DEFAULT_SHELL) -> int:
        """Walk the ECS cascade, then exec into the container or describe a level"""
        levels = self.ecs_levels()
        if describe_cluster:
            state = run_cascade(levels[:1], self.selector)
            return self.print_cluster(chosen(state, 'cluster').id)
        if describe_service:
            state = run_cascade(levels[:2], self.selector)
            return self.print_service(chosen(state, 'cluster').id, chosen(state, 'service').id)
        if task_definition:
            state = run_cascade(levels[:3], self.selector)
            containers = self.list_containers(chosen(state, 'cluster').id,
                                              chosen(state, 'task').id)
            if not containers:
                raise NothingFound('container', 'in {}'.format(chosen(state, 'task').label))
            self._log(self.describe_task_definition(containers[0].task_definition_arn))
            return 0
        state = run_cascade(levels, self.selector)
        task = chosen(state, 'task')
        self._log('Starting ECS Exec session for task: {}'.format(task.id))
        argv = ecs_exec_command(chosen(state, 'cluster').id, task.id,
                                chosen(state, 'container').id, self.region, shell)
        return self.launcher(argv)

    def print_cluster(self, cluster: str) -> int:
        """Print the capacity and CPU of one ECS cluster"""
        summaries = self.describe_cluster(cluster)
        for summary in summaries:
            self._log('\n'.join([
                '',
                'Name:            {}'.format(summary.name),
                'Container Hosts: {}'.format(summary.container_hosts),
                'Running Tasks:   {}'.format(summary.running_tasks),
                'Pending Tasks:   {}'.format(summary.pending_tasks),
                'Services:        {}'.format(summary.services),
                'AVG CPU (5 min): {}'.format(format_cpu(summary.cpu)),
            ]))
        self._warn_gaps(summaries, 'clusters')
        return 0

    def print_service(self, cluster: str, service: str) -> int:
        """Print the counts, launch type and CPU of one ECS service"""
        summaries = self.describe_service(cluster, service)
        for summary in summaries:
            self._log('\n'.join([
                '',
                'Name:            {}'.format(summary.name),
                'Desired:         {}'.format(summary.desired),
                'Running:         {}'.format(summary.running),
                'Pending:         {}'.format(summary.pending),
                'LaunchType:      {}'.format(summary.launch_type),
                'AVG CPU (5 min): {}'.format(format_cpu(summary.cpu)),
            ]))
        self._warn_gaps(summaries, 'services')
        return 0

    def ssm(self, instance_id: str = None, query: str = None) -> int:
        """Pick an instance unless one was given, then start an SSM session"""
        if not instance_id:
            levels = [Level('instance', 'Select an EC2 instance:',
                            lambda state: self.list_instances())]
            state = run_cascade(levels, self.selector, {'instance': query})
            instance = chosen(state, 'instance')
            self._log('{} chosen.'.format(instance.label))
            instance_id = instance.id
        self._log('Starting SSM session for instance: {}'.format(instance_id))
        return self.launcher(ssm_session_command(instance_id))

    def asg(self) -> int:
        """Print scaling values and CPU of every auto scaling group"""
        summaries = self.describe_asgs()
        if not summaries:
            self._log('No ASGs found')
            return 0
        for summary in summaries:
            self._log('\n'.join([
                '',
                'Name:            {}'.format(summary.name),
                'MinSize:         {}'.format(summary.min_size),
                'MaxSize:         {}'.format(summary.max_size),
                'DesiredCapacity: {}'.format(summary.desired),
                'AVG CPU (5 min): {}'.format(format_cpu(summary.cpu)),
            ]))
        self._warn_gaps(summaries, 'Auto Scaling Groups')
        return 0

    def show_instances(self) -> int:
        """Print every EC2 instance"""
        instances = self.list_instances()
        if not instances:
            self._log('No EC2 instances found')
            return 0
        self._log('Instances:')
        for number, instance in enumerate(instances, 1):
            self._log('{}. {}'.format(number, instance.label))
        return 0


def build_parser() -> argparse.ArgumentParser:
    """Command line for awssh"""
    parser = argparse.ArgumentParser(
        prog='awssh', description=__doc__.strip(), epilog=METRIC_POLICY,
        formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument('--region', help='AWS region, overrides the environment')
    parser.add_argument('--debug', action='store_true', help='Log API calls and spawned commands')
    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.required = True

    ecs = subparsers.add_parser(
        'ecs', aliases=['exec'], epilog=METRIC_POLICY,
        help='Start an ECS Exec session with a container, or describe ECS resources')
    ecs.add_argument('-c', '--describe-cluster', action='store_true',
                     help='Describe the selected cluster')
    ecs.add_argument('-s', '--describe-service', action='store_true',
                     help='Describe the selected service')
    ecs.add_argument('-t', '--task-definition', action='store_true',
                     help='Show the task definition for the selected task')
    ecs.add_argument('--shell', default=DEFAULT_SHELL,
                     help='Command to run in the container. Default: {}'.format(DEFAULT_SHELL))
    ecs.set_defaults(command='ecs')

    ssm = subparsers.add_parser('ssm', help='Start an SSM session with an EC2 instance')
    ssm.add_argument('instance_id', nargs='?', metavar='INSTANCE_ID',
                     help='Connect straight to this instance')
    ssm.add_argument('--filter', dest='query', metavar='TEXT',
                     help='Only offer instances whose label contains TEXT')

    subparsers.add_parser('asg', epilog=METRIC_POLICY,
                          help='Describe the scaling values of the ASGs in the region')
    subparsers.add_parser('list', help='List the EC2 instances in the region')
    return parser


def run(args, shell: AwsShell) -> int:
    """Dispatch a parsed command line"""
    if args.command in ('ecs', 'exec'):
        return shell.ecs(args.describe_cluster, args.describe_service,
                         args.task_definition, args.shell)
    if args.command == 'ssm':
        return shell.ssm(args.instance_id, args.query)
    if args.command == 'asg':
        return shell.asg()
    return shell.show_instances()


def main(argv=None, shell_class=AwsShell) -> int:
    """Parse the command line, run it and turn errors into exit codes"""
    args = build_parser().parse_args(argv)
    if args.debug:
        configure_logging('DEBUG')
    region = resolve_region(args.region)
    try:
        return run(args, shell_class(region))
    except Cancelled:
        return 0
    except SessionFailed as err:
        print('error: {}'.format(err), file=sys.stderr)
        return err.exit_code
    except AwsshError as err:
        print('error: {}'.format(err), file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
