"""プロバイダーアダプター（API / CLI）。"""

from prpilot.providers._api import build_model, run_api
from prpilot.providers._command import (
    PROMPT_PLACEHOLDER,
    build_command_args,
    is_stdin_rejection,
    run_command,
)
from prpilot.providers._errors import ProviderError
from prpilot.providers._invoker import DefaultProviderInvoker
from prpilot.providers._usage_parser import parse_usage

__all__ = [
    "PROMPT_PLACEHOLDER",
    "DefaultProviderInvoker",
    "ProviderError",
    "build_command_args",
    "build_model",
    "is_stdin_rejection",
    "parse_usage",
    "run_api",
    "run_command",
]
