# Campaign Service Contracts

"""
Campaign Service Contract Module

This module contains:
- data_contract.py: re-exported campaign models and the test data factory
"""
