"""Project-level exception hierarchy."""


class HookDeployError(Exception):
    """Base for all hookdeploy exceptions."""


class ConfigError(HookDeployError):
    """Configuration is missing or invalid."""


class DeployError(HookDeployError):
    """Deploy script could not be started."""


class ListenerError(HookDeployError):
    """HTTP listener could not bind its address."""
