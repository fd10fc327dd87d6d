"""Core Business Logic Module

Module Structure:
    - graph/   : Graph session, request wrapper and provisioning services
    - log.py   : TRACE level and operation-tagged logging
"""
