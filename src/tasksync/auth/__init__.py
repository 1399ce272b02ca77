from .session import AuthIdentityGate, AuthSession, AuthState, AuthStatus

__all__ = ["AuthIdentityGate", "AuthSession", "AuthState", "AuthStatus"]
