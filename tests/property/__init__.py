"""
OAP Bootstrap - Property-Based Testing Suite

Property-based testing using Hypothesis to check the startup ordering and
lifecycle invariants of the module engine over generated dependency graphs.
"""
