# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Integration tests for the add workflow.

This package contains tests that run add requests against real workspaces
on disk.
"""
