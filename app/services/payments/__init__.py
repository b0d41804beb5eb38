from app.services.payments.chargily import ChargilyGateway
from app.services.payments.errors import PaymentGatewayError
from app.services.payments.paypal import PayPalGateway

__all__ = ["ChargilyGateway", "PayPalGateway", "PaymentGatewayError"]
