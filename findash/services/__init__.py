"""
Services Package

Request-independent business logic: the marketing CSV analyzer, report
import parsing/upserts, report period analytics, campaign validation and
notification delivery.
"""
