from bracket_live.auth.policy import AdminPolicy, Role, UserIdentity

__all__ = ["AdminPolicy", "Role", "UserIdentity"]
