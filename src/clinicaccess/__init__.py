from .config import AccessConfig, LogLevel, RoleDeletionPolicy, load_config_from_env
from .logging import (
    safe_preview,
    redact_secrets,
    safe_log_value,
    AccessLogFormatter,
    AccessLoggerAdapter,
    setup_logging,
    get_access_logger,
)
from .exceptions import (
    ClinicAccessError,
    ConfigurationError,
    ValidationError,
    UnknownModuleError,
    RoleValidationError,
    StoreError,
    SessionFetchError,
    ProfileFetchError,
    ProfileWriteError,
    GrantFetchError,
    GrantWriteError,
    RoleFetchError,
    RoleWriteError,
    SlugCollisionError,
    RoleInUseError,
    PermissionDeniedError,
    error_registry,
    register_error,
)
from .permissions import (
    ADMIN_TIER,
    Action,
    GrantFlags,
    GrantSet,
    Module,
    ModuleCategory,
    ModuleInfo,
    ModulePermission,
    PermissionGrant,
    Principal,
    Profile,
    RoleDefinition,
    Session,
    SystemRole,
    decide,
    is_privileged,
    module_permissions,
)
from .store import PermissionStoreAccessor
from .roles import RoleRegistry, slugify_role_name, system_roles
from .identity import IdentityResolver, IdentityState
from .context import AccessContextProvider, AccessState
from .session import AccessSession
from .guard import check_access, ensure_can_administer, require_access, requires
from .editor import PermissionEditor, ToggleResult
from .team import TeamDirectory

__all__ = [
    'AccessConfig',
    'LogLevel',
    'RoleDeletionPolicy',
    'load_config_from_env',
    'safe_preview',
    'redact_secrets',
    'safe_log_value',
    'AccessLogFormatter',
    'AccessLoggerAdapter',
    'setup_logging',
    'get_access_logger',
    'ClinicAccessError',
    'ConfigurationError',
    'ValidationError',
    'UnknownModuleError',
    'RoleValidationError',
    'StoreError',
    'SessionFetchError',
    'ProfileFetchError',
    'ProfileWriteError',
    'GrantFetchError',
    'GrantWriteError',
    'RoleFetchError',
    'RoleWriteError',
    'SlugCollisionError',
    'RoleInUseError',
    'PermissionDeniedError',
    'error_registry',
    'register_error',
    'ADMIN_TIER',
    'Action',
    'GrantFlags',
    'GrantSet',
    'Module',
    'ModuleCategory',
    'ModuleInfo',
    'ModulePermission',
    'PermissionGrant',
    'Principal',
    'Profile',
    'RoleDefinition',
    'Session',
    'SystemRole',
    'decide',
    'is_privileged',
    'module_permissions',
    'PermissionStoreAccessor',
    'RoleRegistry',
    'slugify_role_name',
    'system_roles',
    'IdentityResolver',
    'IdentityState',
    'AccessContextProvider',
    'AccessState',
    'AccessSession',
    'check_access',
    'ensure_can_administer',
    'require_access',
    'requires',
    'PermissionEditor',
    'ToggleResult',
    'TeamDirectory',
]
