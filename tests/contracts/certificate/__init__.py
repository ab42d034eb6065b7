# Certificate Service Contracts

"""
Certificate Service Contract Module

This module contains:
- data_contract.py: re-exported certificate models and the test data factory
"""
