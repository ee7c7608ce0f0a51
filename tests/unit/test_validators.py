"""Unit tests for input validators."""

import pytest

from ftpsync.utils.validators import (
    validate_ftp_path,
    validate_host,
    validate_port,
    validate_timeout,
)


class TestValidateHost:
    """Tests for host validation."""

    @pytest.mark.parametrize("host", ["192.168.1.10", "ftp.example.com", "localhost", " nas "])
    def test_valid(self, host):
        assert validate_host(host) == (True, None)

    def test_empty(self):
        is_valid, error = validate_host("  ")

        assert is_valid is False
        assert error == "Host is required"

    def test_invalid(self):
        is_valid, error = validate_host("bad host!")

        assert is_valid is False
        assert "Invalid host" in error


class TestValidatePort:
    """Tests for port validation."""

    def test_string_port(self):
        assert validate_port("2121") == (True, None)

    @pytest.mark.parametrize("port", [0, 65536])
    def test_out_of_range(self, port):
        is_valid, error = validate_port(port)

        assert is_valid is False
        assert "between 1 and 65535" in error

    def test_not_a_number(self):
        assert validate_port("ftp") == (False, "Port must be a number")


class TestValidateTimeout:
    """Tests for timeout validation."""

    def test_valid(self):
        assert validate_timeout(30) == (True, None)

    def test_too_short(self):
        is_valid, error = validate_timeout(1)

        assert is_valid is False
        assert "between 5 and 300" in error


class TestValidateFtpPath:
    """Tests for server path validation."""

    def test_valid(self):
        assert validate_ftp_path("/www/site") == (True, None)

    def test_relative(self):
        is_valid, error = validate_ftp_path("www")

        assert is_valid is False
        assert "absolute" in error

    def test_parent_segment(self):
        is_valid, error = validate_ftp_path("/www/../etc")

        assert is_valid is False
        assert "'..'" in error
