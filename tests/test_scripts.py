"""
Tests for the local setup scripts
"""
import boto3
from moto import mock_aws

import create_tables_local
import seed_achievements as seed_script


class TestCreateTables:
    """Local table creation"""

    def test_creates_both_tables_once(self, aws_credentials, capsys):
        with mock_aws():
            client = boto3.client("dynamodb", region_name="us-east-1")

            create_tables_local.create_tables(client)
            create_tables_local.create_tables(client)

            names = client.list_tables()["TableNames"]
            assert create_tables_local.PROGRESS_TABLE in names
            assert create_tables_local.ACHIEVEMENTS_TABLE in names
            assert "already exists" in capsys.readouterr().out


class TestSeedScript:
    """Catalog seeding entry point"""

    def test_seeds_bundled_catalog(self, achievement_repository, capsys):
        count = seed_script.main(repository=achievement_repository)

        assert count == 26
        assert len(achievement_repository.list_achievements(active_only=False)) == 26
        assert "streak: 6" in capsys.readouterr().out
