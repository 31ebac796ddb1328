"""
Common Error Constants

Centralized error messages returned in service result dicts.
"""

# Auth errors
ERROR_NOT_AUTHENTICATED = "User is not authenticated"
ERROR_SIGN_IN_FAILED = "Sign in failed"
ERROR_SIGN_UP_FAILED = "Sign up failed"
ERROR_SIGN_OUT_FAILED = "Sign out failed"

# Profile errors
ERROR_PROFILE_NOT_FOUND = "Profile not found"
ERROR_PROFILE_UPDATE_FAILED = "Failed to update profile"

# Cart errors
ERROR_INVALID_QUANTITY = "quantity must be an integer"
ERROR_MISSING_PRODUCT_ID = "product_id must be a non-empty string"
