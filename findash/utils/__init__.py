"""
Utilities Package

This package contains encryption, authentication, validation, security and
metrics helpers. Submodules are imported directly (models depend on
`field_encryption`, and `auth_utils` depends on models).
"""
