"""Core domain package for autoremind.

Core contains rules, matching, and reminder scheduling logic without any Slack
or transport-specific code, keeping the business logic portable.
"""
