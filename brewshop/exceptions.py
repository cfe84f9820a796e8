# brewshop/exceptions.py
"""
Domain errors.
Each one carries a message that is safe to show to the customer,
and the HTTP status the API layer should answer with.
Anything that is NOT a BrewShopError is treated as an internal failure
and its details are never sent back to the user.
"""


class BrewShopError(Exception):
    status_code = 400

    def __init__(self, message: str, **context):
        self.message = message
        self.context = context
        super().__init__(message)


# --- Validation errors ---

class ValidationFailedError(BrewShopError):
    pass


class EmptyCartError(ValidationFailedError):
    def __init__(self):
        super().__init__("Cart is empty")


class InvalidTierError(ValidationFailedError):
    status_code = 404

    def __init__(self, tier):
        super().__init__(f"Unknown tier: {tier}", tier=tier)


# --- Not found errors ---

class NotFoundError(BrewShopError):
    status_code = 404


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id=None):
        super().__init__("User not found", user_id=user_id)


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id=None):
        super().__init__("Product not found", product_id=product_id)


class OrderNotFoundError(NotFoundError):
    def __init__(self, message: str = "Order not found", **context):
        super().__init__(message, **context)


class GiftCardNotFoundError(NotFoundError):
    def __init__(self, message: str = "Gift card code is invalid or was already redeemed", **context):
        super().__init__(message, **context)


# --- Conflict errors ---

class ConflictError(BrewShopError):
    status_code = 409


class GiftCardAlreadyRedeemedError(ConflictError):
    def __init__(self, code=None):
        super().__init__("Gift card was already redeemed", code=code)


class CodeGenerationError(ConflictError):
    def __init__(self, attempts: int):
        super().__init__("Could not generate a gift card code, please try again", attempts=attempts)


# --- Time based ---

class GiftCardExpiredError(BrewShopError):
    status_code = 410

    def __init__(self, code=None):
        super().__init__("Gift card has expired", code=code)
