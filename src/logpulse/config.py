"""Configuration loading.

Options come from command line overrides first, then LOGPULSE_* environment
variables, then the MonitorConfig defaults.
"""

from pydantic import ValidationError

from logpulse.errors import ConfigurationError
from logpulse.models import MonitorConfig
from logpulse.reverse_reader import DEFAULT_BLOCK_SIZE
from logpulse.utils import get_int_env, get_str_env


# option name -> environment variable
ENV_VARS = {
    'log': 'LOGPULSE_LOG',
    'format': 'LOGPULSE_FORMAT',
    'rla_run_time': 'LOGPULSE_RUN_TIME',
    'seek_format': 'LOGPULSE_SEEK_FORMAT',
    'state_file': 'LOGPULSE_STATE_FILE',
    'metrics_file': 'LOGPULSE_METRICS_FILE',
    'last_run': 'LOGPULSE_LAST_RUN',
}


def load_config(**overrides) -> MonitorConfig:
    """Build a MonitorConfig from overrides and the environment.

    Overrides set to None are ignored, so click options can be passed through
    directly.

    Raises:
        ConfigurationError: If a value can't be converted, e.g. a malformed
            LOGPULSE_LAST_RUN
    """
    values = {}
    for option, env_var in ENV_VARS.items():
        value = get_str_env(env_var, None)
        if value:
            values[option] = value

    block_size = get_int_env('LOGPULSE_BLOCK_SIZE', DEFAULT_BLOCK_SIZE)
    if block_size > 0:
        values['block_size'] = block_size

    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return MonitorConfig(**values)
    except ValidationError as e:
        fields = ', '.join(str(err['loc'][0]) for err in e.errors() if err['loc'])
        raise ConfigurationError(f'Invalid configuration value for {fields}') from e
