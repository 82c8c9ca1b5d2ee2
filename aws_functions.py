"""AWS lookups used by the awssh menus"""
import collections
import datetime
import json
import logging

import boto3
import botocore.exceptions

from aws_config import CPU_PERIOD, CPU_WINDOW
from aws_errors import NoDatapoints, ProviderError

logger = logging.getLogger('awssh.functions')

Resource = collections.namedtuple('Resource', ['id', 'label'])
Container = collections.namedtuple('Container', ['name', 'task_definition_arn'])
ClusterSummary = collections.namedtuple(
    'ClusterSummary',
    ['name', 'container_hosts', 'running_tasks', 'pending_tasks', 'services', 'cpu'])
ServiceSummary = collections.namedtuple(
    'ServiceSummary', ['name', 'desired', 'running', 'pending', 'launch_type', 'cpu'])
AsgSummary = collections.namedtuple(
    'AsgSummary', ['name', 'min_size', 'max_size', 'desired', 'cpu'])

NO_NAME = '{no name}'
AWS_ERRORS = (botocore.exceptions.ClientError, botocore.exceptions.BotoCoreError)


def short_name(arn: str) -> str:
    """Last path segment of an ARN"""
    return arn.split('/')[-1]


def arn_resource(arn: str) -> Resource:
    """Wrap an ARN with its short name as label"""
    return Resource(arn, short_name(arn))


def instance_label(instance: dict) -> str:
    """Menu label for an EC2 instance, its Name tag plus id"""
    name = ''
    for tag in instance.get('Tags', []):
        if tag.get('Key') == 'Name':
            name = tag.get('Value', '')
            break
    return '{} ({})'.format(name or NO_NAME, instance['InstanceId'])


def cpu_gaps(summaries) -> list:
    """Names of summaries whose CPU metric had no datapoints"""
    return [s.name for s in summaries if s.cpu is None]


class AwsFunctions():
    """Lists and describes AWS resources in a single region"""

    def __init__(self, region: str, session=None):
        self.region = region
        if session is None:
            try:
                session = boto3.session.Session(region_name=region)
            except AWS_ERRORS as err:
                raise ProviderError('unable to load AWS configuration', err) from err
        self.session = session
        self._clients = {}

    def _client(self, service: str):
        """Create clients on first use"""
        if service not in self._clients:
            logger.debug('Creating %s client in %s', service, self.region)
            self._clients[service] = self.session.client(service, region_name=self.region)
        return self._clients[service]

    def _paginate(self, service: str, operation: str, action: str, **kwargs) -> list:
        """Collect every page of a paginated call, nothing if any page fails"""
        pages = []
        paginator = self._client(service).get_paginator(operation)
        logger.debug('Paginating %s.%s %s', service, operation, kwargs)
        try:
            for page in paginator.paginate(**kwargs):
                pages.append(page)
        except AWS_ERRORS as err:
            raise ProviderError(action, err) from err
        return pages

    def _call(self, service: str, operation: str, action: str, **kwargs) -> dict:
        """Single API call with errors wrapped"""
        logger.debug('Calling %s.%s %s', service, operation, kwargs)
        try:
            return getattr(self._client(service), operation)(**kwargs)
        except AWS_ERRORS as err:
            raise ProviderError(action, err) from err

    def list_clusters(self) -> list:
        """All ECS clusters"""
        pages = self._paginate('ecs', 'list_clusters', 'unable to list ECS clusters')
        return [arn_resource(arn) for page in pages for arn in page.get('clusterArns', [])]

    def list_services(self, cluster: str) -> list:
        """All services in an ECS cluster"""
        pages = self._paginate('ecs', 'list_services', 'unable to list ECS services',
                               cluster=cluster)
        return [arn_resource(arn) for page in pages for arn in page.get('serviceArns', [])]

    def list_tasks(self, cluster: str, service: str) -> list:
        """All tasks of an ECS service"""
        kwargs = {
            'cluster': cluster,
            'serviceName': service
        }
        pages = self._paginate('ecs', 'list_tasks', 'unable to list ECS tasks', **kwargs)
        return [arn_resource(arn) for page in pages for arn in page.get('taskArns', [])]

    def list_containers(self, cluster: str, task: str) -> list:
        """Containers of a task, tasks can run several"""
        kwargs = {
            'cluster': cluster,
            'tasks': [task]
        }
        output = self._call('ecs', 'describe_tasks', 'unable to describe tasks', **kwargs)
        containers = []
        for described in output.get('tasks', []):
            for container in described.get('containers', []):
                containers.append(Container(container['name'], described['taskDefinitionArn']))
        return containers

    def list_instances(self) -> list:
        """All EC2 instances, labelled by their Name tag"""
        pages = self._paginate('ec2', 'describe_instances', 'unable to describe EC2 instances')
        instances = []
        for page in pages:
            for reservation in page.get('Reservations', []):
                for instance in reservation.get('Instances', []):
                    instances.append(Resource(instance['InstanceId'], instance_label(instance)))
        return instances

    def list_asgs(self) -> list:
        """Raw auto scaling group records"""
        pages = self._paginate('autoscaling', 'describe_auto_scaling_groups',
                               'unable to describe autoscaling groups')
        return [group for page in pages for group in page.get('AutoScalingGroups', [])]

    def get_metric_average(self, namespace: str, metric_name: str, dimensions: list,
                           start, end, period: int = CPU_PERIOD,
                           statistic: str = 'Average') -> float:
        """Mean of a CloudWatch statistic over a time window

        Raises NoDatapoints when CloudWatch has nothing for the window, which
        is normal for idle or freshly created resources.
        """
        kwargs = {
            'Namespace': namespace,
            'MetricName': metric_name,
            'Dimensions': dimensions,
            'StartTime': start,
            'EndTime': end,
            'Period': period,
            'Statistics': [statistic]
        }
        output = self._call('cloudwatch', 'get_metric_statistics',
                            'unable to get metric statistics from CloudWatch', **kwargs)
        values = [dp[statistic] for dp in output.get('Datapoints', []) if statistic in dp]
        if not values:
            raise NoDatapoints(metric_name, dimensions)
        return sum(values) / len(values)

    def average_cpu(self, namespace: str, dimensions: list):
        """Average CPUUtilization over the trailing window, None if there is no data"""
        end = datetime.datetime.now(datetime.timezone.utc)
        start = end - CPU_WINDOW
        try:
            return self.get_metric_average(namespace, 'CPUUtilization', dimensions, start, end)
        except NoDatapoints as err:
            logger.debug('%s', err)
            return None

    def describe_cluster(self, cluster: str) -> list:
        """Capacity and CPU of an ECS cluster"""
        output = self._call('ecs', 'describe_clusters', 'unable to describe cluster',
                            clusters=[cluster])
        summaries = []
        for described in output.get('clusters', []):
            dimensions = [{'Name': 'ClusterName', 'Value': described['clusterName']}]
            summaries.append(ClusterSummary(
                name=described['clusterName'],
                container_hosts=described.get('registeredContainerInstancesCount', 0),
                running_tasks=described.get('runningTasksCount', 0),
                pending_tasks=described.get('pendingTasksCount', 0),
                services=described.get('activeServicesCount', 0),
                cpu=self.average_cpu('AWS/ECS', dimensions)))
        return summaries

    def describe_service(self, cluster: str, service: str) -> list:
        """Counts, launch type and CPU of an ECS service"""
        if '/' not in cluster:
            raise ProviderError('unable to describe service',
                                ValueError('invalid cluster ARN: {}'.format(cluster)))
        kwargs = {
            'cluster': cluster,
            'services': [service]
        }
        output = self._call('ecs', 'describe_services', 'unable to describe service', **kwargs)
        cluster_name = short_name(cluster)
        summaries = []
        for described in output.get('services', []):
            dimensions = [
                {'Name': 'ClusterName', 'Value': cluster_name},
                {'Name': 'ServiceName', 'Value': described['serviceName']}
            ]
            summaries.append(ServiceSummary(
                name=described['serviceName'],
                desired=described.get('desiredCount', 0),
                running=described.get('runningCount', 0),
                pending=described.get('pendingCount', 0),
                launch_type=described.get('launchType', ''),
                cpu=self.average_cpu('AWS/ECS', dimensions)))
        return summaries

    def describe_task_definition(self, task_definition: str) -> str:
        """Task definition as indented JSON"""
        output = self._call('ecs', 'describe_task_definition',
                            'unable to describe task definition',
                            taskDefinition=task_definition)
        output.pop('ResponseMetadata', None)
        return json.dumps(output, indent=1, default=str)

    def describe_asgs(self) -> list:
        """Scaling values and CPU of every auto scaling group"""
        summaries = []
        for group in self.list_asgs():
            name = group['AutoScalingGroupName']
            dimensions = [{'Name': 'AutoScalingGroupName', 'Value': name}]
            summaries.append(AsgSummary(
                name=name,
                min_size=group['MinSize'],
                max_size=group['MaxSize'],
                desired=group['DesiredCapacity'],
                cpu=self.average_cpu('AWS/EC2', dimensions)))
        return summaries
