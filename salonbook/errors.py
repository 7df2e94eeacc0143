"""
Taxonomie d'erreurs du parcours panier → paiement → réservation.

Chaque erreur porte:
- code: identifiant stable pour les clients API
- message: texte affichable à l'utilisateur
- status_code: correspondance HTTP (utilisée par le handler d'exceptions)
- redirect_to: destination navigateur éventuelle (login, accueil)
"""
from typing import Any, Dict, Optional


class CheckoutError(Exception):
    code = "checkout_error"
    status_code = 400
    default_message = "Erreur lors de la réservation"

    def __init__(self, message: Optional[str] = None, *, redirect_to: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.redirect_to = redirect_to
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.redirect_to:
            payload["redirect_to"] = self.redirect_to
        payload.update({k: v for k, v in self.context.items() if v is not None})
        return payload


class ValidationError(CheckoutError):
    code = "validation_error"
    default_message = "Données de réservation invalides"


class AuthenticationRequired(ValidationError):
    code = "authentication_required"
    status_code = 401
    default_message = "Veuillez vous connecter pour continuer"


class PreconditionError(ValidationError):
    code = "precondition_failed"
    default_message = "Veuillez d'abord choisir une date"


class ItemNotFoundError(ValidationError):
    code = "item_not_found"
    status_code = 404
    default_message = "Article introuvable dans le panier"


class ItemAlreadyInCartError(ValidationError):
    code = "already_in_cart"
    status_code = 409
    default_message = "Ce service est déjà dans le panier"


class ConfigurationError(CheckoutError):
    code = "configuration_error"
    status_code = 503
    default_message = "Configuration des frais indisponible, réessayez plus tard"


class VendorMismatchError(CheckoutError):
    code = "vendor_mismatch"
    status_code = 409
    default_message = "Le panier contient déjà des services d'un autre salon. Videz-le pour continuer."


class CatalogError(CheckoutError):
    code = "service_not_found"
    status_code = 404
    default_message = "Service introuvable"


class PaymentInitError(CheckoutError):
    code = "payment_init_failed"
    status_code = 502
    default_message = "Impossible d'initier le paiement, réessayez"


class PaymentVerificationError(CheckoutError):
    code = "payment_verification_failed"
    status_code = 402
    default_message = "La vérification du paiement a échoué"


class BookingCreationError(CheckoutError):
    code = "booking_creation_failed"
    status_code = 502
    default_message = "Paiement reçu mais la réservation n'a pas pu être créée. Contactez le support avec la référence fournie."

    @property
    def support_reference(self) -> Optional[str]:
        return self.context.get("support_reference")


class CartClearError(CheckoutError):
    code = "cart_clear_failed"
    status_code = 500
    default_message = "Impossible de vider le panier"


class CartSyncError(CheckoutError):
    code = "cart_sync_failed"
    status_code = 503
    default_message = "Impossible d'enregistrer le panier, réessayez"


class MissingContextError(CheckoutError):
    code = "missing_context"
    status_code = 404
    default_message = "Aucune réservation à afficher"


class InvalidTransitionError(CheckoutError):
    code = "invalid_transition"
    status_code = 409
    default_message = "Étape de paiement invalide pour cette session"
