import boto3
import pytest
from botocore.stub import Stubber

from aws_errors import Cancelled
from aws_functions import AwsFunctions

REGION = 'eu-west-1'
CLUSTER_ARN = 'arn:aws:ecs:eu-west-1:123456789012:cluster/web'
SERVICE_ARN = 'arn:aws:ecs:eu-west-1:123456789012:service/web/frontend'
TASK_ARN = 'arn:aws:ecs:eu-west-1:123456789012:task/web/0a1b2c3d4e5f'
TASK_DEF_ARN = 'arn:aws:ecs:eu-west-1:123456789012:task-definition/frontend:7'


@pytest.fixture
def boto_session():
    return boto3.session.Session(
        aws_access_key_id='testing',
        aws_secret_access_key='testing',
        region_name=REGION)


@pytest.fixture
def functions(boto_session):
    return AwsFunctions(REGION, boto_session)


@pytest.fixture
def stub():
    """Activate a Stubber on a client, checking every response was used"""
    stubbers = []

    def _stub(client):
        stubber = Stubber(client)
        stubber.activate()
        stubbers.append(stubber)
        return stubber

    yield _stub
    for stubber in stubbers:
        stubber.assert_no_pending_responses()
        stubber.deactivate()


class FakeMenu():
    """Stands in for TerminalMenu, always answers with the same choice"""

    created = []
    choice = 0

    def __init__(self, entries, **kwargs):
        self.entries = entries
        self.kwargs = kwargs
        type(self).created.append(self)

    def show(self):
        return self.choice


@pytest.fixture
def fake_menu():
    """A fresh FakeMenu subclass per test"""
    return type('Menu', (FakeMenu,), {'created': [], 'choice': 0})


class ScriptedSelector():
    """Selector double answering prompts from a list, None means cancel"""

    def __init__(self, answers):
        self.answers = list(answers)
        self.prompts = []

    def select(self, labels, prompt):
        self.prompts.append((prompt, list(labels)))
        answer = self.answers.pop(0)
        if answer is None:
            raise Cancelled(prompt)
        return answer


@pytest.fixture
def selector_answering():
    return ScriptedSelector
