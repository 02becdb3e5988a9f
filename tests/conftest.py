import os
import pytest
from moto import mock_aws
from fastapi.testclient import TestClient
import boto3

# Set test environment variables BEFORE importing app modules
os.environ["TESTING"] = "true"

# Dummy AWS credentials for moto
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["AWS_REGION"] = "us-east-1"
os.environ["S3_BUCKET"] = "stickers"
os.environ["IMAGES_TABLE"] = "images"
os.environ["TAGS_TABLE"] = "tags"
os.environ["ADMIN_EMAIL"] = "admin@example.com"
os.environ["ADMIN_PASSWORD"] = "s3cret"
os.environ["SESSION_SECRET"] = "test-session-secret"
# Clear endpoints so moto mocks are used instead of localstack, and rate limiting stays off
os.environ.pop("AWS_ENDPOINT_URL", None)
os.environ.pop("STORAGE_PUBLIC_URL", None)
os.environ.pop("REDIS_URL", None)

from cryptostickers.main import app

ADMIN_CREDENTIALS = {"email": "admin@example.com", "password": "s3cret"}


@pytest.fixture(scope="function")
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"


@pytest.fixture(scope="function")
def test_client(aws_credentials):
    with mock_aws():
        # Create S3 bucket
        s3 = boto3.client("s3", region_name="us-east-1")
        s3.create_bucket(Bucket="stickers")

        # Create DynamoDB tables
        dynamodb = boto3.client("dynamodb", region_name="us-east-1")
        for table in ("images", "tags"):
            dynamodb.create_table(
                TableName=table,
                KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
                AttributeDefinitions=[{"AttributeName": "id", "AttributeType": "S"}],
                ProvisionedThroughput={"ReadCapacityUnits": 5, "WriteCapacityUnits": 5},
            )

        # The lifespan creates the services inside the moto context
        with TestClient(app) as client:
            yield client


@pytest.fixture(scope="function")
def admin_client(test_client):
    resp = test_client.post("/login", json=ADMIN_CREDENTIALS)
    assert resp.status_code == 200
    return test_client
