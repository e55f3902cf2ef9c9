"""
Backend Scripts Module

Available scripts:
    - validate_workflow.py: Validates and prints the job order workflow tables

Usage:
    python -m scripts.validate_workflow
"""
