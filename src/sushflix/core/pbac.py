import logging
import os
from typing import Annotated, Dict, List

from fastapi import Depends, HTTPException, status
from pydantic import BaseModel
from yaml import safe_load

from src.sushflix.api.auth_deps import get_current_user
from src.sushflix.schemas.auth import AuthContext

logger = logging.getLogger(__name__)


# Load policies from YAML file
def load_policies() -> Dict:
    try:
        # Try multiple possible paths for policies.yaml
        possible_paths = [
            "policies.yaml",  # Current directory
            "/app/policies.yaml",  # Docker app directory
            os.path.join(os.path.dirname(__file__), "../../../policies.yaml"),  # Relative to this file
        ]

        for path in possible_paths:
            if os.path.exists(path):
                logger.debug(f"Loading policies from: {path}")
                with open(path, "r") as f:
                    return safe_load(f) or {}

        logger.error(f"policies.yaml not found in any of these paths: {possible_paths}")
        return {}
    except Exception as e:
        logger.error(f"Failed to load policies: {e}")
        return {}


class Policy(BaseModel):
    roles: List[str]
    actions: List[str]
    resources: List[str]


def check_policy(user: AuthContext, action: str, resource: str) -> bool:
    """Check if the caller's role may perform action on resource."""
    policies = load_policies()
    role = user.role.value

    for policy in policies.get("policies", []):
        policy_obj = Policy(**policy)

        # Check if user has required role
        if role not in policy_obj.roles:
            continue

        # Check if action is allowed
        if action not in policy_obj.actions:
            continue

        # Check if resource is allowed (including wildcard "*")
        if "*" not in policy_obj.resources and resource not in policy_obj.resources:
            continue

        logger.debug(f"Policy check passed for user {user.user_id}: {action} {resource}")
        return True

    logger.warning(f"No matching policy found for user {user.user_id} ({role}), action: {action}, resource: {resource}")
    return False


def require_permission(action: str, resource: str):
    """Dependency requiring the caller's role to allow action on resource."""
    async def permission_dependency(
        current_user: Annotated[AuthContext, Depends(get_current_user)],
    ) -> AuthContext:
        if not check_policy(current_user, action, resource):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Permission denied"
            )
        return current_user

    return permission_dependency
