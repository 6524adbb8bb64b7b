"""API Resilience Implementations.

Contains the rate governor and the retry policy used by the batch executor.
Bounded Context: API Resilience
"""
