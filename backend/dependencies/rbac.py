"""
RBAC dependencies for FastAPI routes
Role-based access control implemented as dependencies that run after authentication
"""
from fastapi import HTTPException, status, Request
import logging

logger = logging.getLogger(__name__)

RESOURCES_FOR_ROLES = {
    'supplier': {
        'users/me': ['read', 'write'],
        'products': ['read', 'write', 'delete'],  # Own listings only
        'orders/incoming': ['read'],
        'orders/status': ['write'],  # Only orders addressed to them
        'orders/summary': ['read'],
        'feedback': ['read'],
        'feedback/received': ['read'],
    },
    'vendor': {
        'users/me': ['read', 'write'],
        'products': ['read'],  # Can view products only
        'orders': ['read', 'write'],  # Place orders and see their own
        'feedback': ['read', 'write'],
    },
}

def normalize_path(path: str) -> str:
    """Normalize request path for RBAC checking"""
    if path.startswith('/'):
        path = path[1:]

    segments = path.split('/')

    if segments[0] == 'users':
        if len(segments) >= 2 and segments[1] == 'me':
            return 'users/me'
        return 'users'

    elif segments[0] == 'orders':
        if len(segments) >= 2:
            if segments[1] in ('incoming', 'summary'):
                return f'orders/{segments[1]}'
            if segments[-1] == 'status':
                return 'orders/status'
        return 'orders'

    elif segments[0] == 'feedback':
        if len(segments) >= 2 and segments[1] == 'received':
            return 'feedback/received'
        return 'feedback'

    return segments[0]

def translate_method_to_action(method: str) -> str:
    """Map HTTP methods to RBAC actions"""
    method_permission_mapping = {
        'GET': 'read',
        'POST': 'write',
        'PUT': 'write',
        'PATCH': 'write',
        'DELETE': 'delete',
    }
    return method_permission_mapping.get(method.upper(), 'read')

def has_permission(user_role: str, resource_name: str, required_permission: str) -> bool:
    """Check if user role has permission for the resource and action"""
    if user_role not in RESOURCES_FOR_ROLES:
        return False

    user_permissions = RESOURCES_FOR_ROLES[user_role]

    if resource_name in user_permissions:
        return required_permission in user_permissions[resource_name]

    # Sub-resources not listed for a role are denied rather than inherited
    return False

def require_permission(resource: str = None, permission: str = None):
    """
    Create an RBAC dependency that checks permissions

    Args:
        resource: Specific resource name (auto-detected if not provided)
        permission: Specific permission (auto-detected if not provided)
    """
    def check_rbac(request: Request):
        """RBAC dependency function"""
        try:
            current_user = getattr(request.state, 'current_user', None)
            if not current_user:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Authentication required"
                )

            if isinstance(current_user, dict):
                user_role = current_user.get('role')
            else:
                user_role = getattr(current_user, 'role', None)
            user_role = user_role or 'unknown'

            resource_name = resource or normalize_path(str(request.url.path))
            required_permission = permission or translate_method_to_action(request.method)

            logger.info(f"RBAC Check - User: {user_role}, Resource: {resource_name}, Permission: {required_permission}")

            if not has_permission(user_role, resource_name, required_permission):
                logger.warning(f"Access denied - User: {user_role}, Resource: {resource_name}, Permission: {required_permission}")
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Access denied. {user_role.title()} role does not have {required_permission} permission for {resource_name}"
                )

            return True

        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"RBAC dependency error: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Authorization check failed"
            )

    return check_rbac

# Profile permissions
require_profile_read = require_permission("users/me", "read")
require_profile_write = require_permission("users/me", "write")

# Product permissions
require_product_write = require_permission("products", "write")  # Suppliers only
require_product_delete = require_permission("products", "delete")  # Suppliers only

# Order permissions
require_order_read = require_permission("orders", "read")
require_order_write = require_permission("orders", "write")  # Vendors only
require_incoming_orders = require_permission("orders/incoming", "read")
require_order_status_write = require_permission("orders/status", "write")
require_order_summary = require_permission("orders/summary", "read")

# Feedback permissions
require_feedback_write = require_permission("feedback", "write")  # Vendors only
require_feedback_received = require_permission("feedback/received", "read")
