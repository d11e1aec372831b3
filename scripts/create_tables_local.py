#!/usr/bin/env python3
"""
Create DynamoDB tables in LocalStack for local development
"""
import os

import boto3
from botocore.exceptions import ClientError

PROGRESS_TABLE = os.getenv('DYNAMODB_PROGRESS_TABLE', 'progress-engine-dev-user-progress')
ACHIEVEMENTS_TABLE = os.getenv('DYNAMODB_ACHIEVEMENTS_TABLE', 'progress-engine-dev-achievements')


def table_definitions():
    """PK/SK string keys for both tables, on-demand billing"""
    return [
        {
            'TableName': name,
            'KeySchema': [
                {'AttributeName': 'PK', 'KeyType': 'HASH'},
                {'AttributeName': 'SK', 'KeyType': 'RANGE'}
            ],
            'AttributeDefinitions': [
                {'AttributeName': 'PK', 'AttributeType': 'S'},
                {'AttributeName': 'SK', 'AttributeType': 'S'}
            ],
            'BillingMode': 'PAY_PER_REQUEST'
        }
        for name in (PROGRESS_TABLE, ACHIEVEMENTS_TABLE)
    ]


def create_tables(dynamodb=None):
    """Create all DynamoDB tables for the progress engine"""
    if dynamodb is None:
        # Connect to LocalStack
        dynamodb = boto3.client(
            'dynamodb',
            endpoint_url=os.getenv('DYNAMODB_ENDPOINT', 'http://localhost:4566'),
            region_name=os.getenv('AWS_REGION', 'us-east-1'),
            aws_access_key_id='test',
            aws_secret_access_key='test'
        )

    for table_config in table_definitions():
        table_name = table_config['TableName']
        try:
            dynamodb.describe_table(TableName=table_name)
            print(f"✓ Table {table_name} already exists")
        except ClientError as e:
            if e.response['Error']['Code'] == 'ResourceNotFoundException':
                dynamodb.create_table(**table_config)
                print(f"✓ Created table {table_name}")
            else:
                raise


if __name__ == "__main__":
    create_tables()
