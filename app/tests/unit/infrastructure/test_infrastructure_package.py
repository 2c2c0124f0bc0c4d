"""Unit tests for the infrastructure package exports."""

import pytest

import infrastructure

pytestmark = pytest.mark.unit


class TestInfrastructureExports:
    def test_all_names_are_importable(self):
        for name in infrastructure.__all__:
            assert getattr(infrastructure, name) is not None

    def test_package_logger_is_usable(self):
        infrastructure.logger.info("infrastructure_package_test")

    def test_operation_result_exported(self):
        result = infrastructure.OperationResult.success()

        assert result.status is infrastructure.OperationStatus.SUCCESS
