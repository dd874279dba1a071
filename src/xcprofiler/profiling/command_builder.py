"""
Command construction for xctrace recording and trace export.

All functions here are pure: same input, same argument list.
"""

from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

# Short template names to full Instruments template names.
TEMPLATE_MAPPING: Dict[str, str] = {
    "time": "Time Profiler",
    "allocations": "Allocations",
    "leaks": "Leaks",
}

# Table schema exported for each xctrace-exported template.
EXPORT_SCHEMAS: Dict[str, str] = {
    "time": "time-profile",
    "allocations": "allocations",
}


def resolve_template_name(template: str) -> str:
    """Map a short name to its Instruments template; unknown names pass through."""
    return TEMPLATE_MAPPING.get(template, template)


def build_record_command(
    device_udid: str,
    bundle_id: str,
    templates: Sequence[str],
    output_path: Union[str, Path],
    launch_args: Optional[Sequence[str]] = None,
    env_vars: Optional[Mapping[str, str]] = None,
    xcrun_path: str = "xcrun",
) -> List[str]:
    """Build the `xctrace record` argument list.

    Argument order is fixed: device, launch target, one --template pair per
    template in input order, output path, stdout streaming flag, then
    --launch-arg pairs and --env KEY=VALUE pairs.

    Examples:
        >>> build_record_command("ABCD", "com.x.A", ["time"], "/tmp/r.trace")
        ['xcrun', 'xctrace', 'record', '--device', 'ABCD', '--launch', 'com.x.A',
         '--template', 'Time Profiler', '--output', '/tmp/r.trace',
         '--target-stdout', '-']
    """
    args = [
        xcrun_path, "xctrace", "record",
        "--device", device_udid,
        "--launch", bundle_id,
    ]

    for template in templates:
        args.extend(["--template", resolve_template_name(template)])

    args.extend(["--output", str(output_path)])
    args.extend(["--target-stdout", "-"])

    for arg in launch_args or ():
        args.extend(["--launch-arg", arg])

    for key, value in (env_vars or {}).items():
        args.extend(["--env", f"{key}={value}"])

    return args


def build_export_xpath(schema: str) -> str:
    """XPath selecting one data table of the first run in a trace bundle."""
    return f'/trace-toc/run[@number="1"]/data/table[@schema="{schema}"]'


def build_export_command(
    trace_path: Union[str, Path],
    template: str,
    xcrun_path: str = "xcrun",
) -> List[str]:
    """Build the export command for one template of a trace bundle.

    Time Profiler and Allocations tables are exported as XML by
    `xctrace export`; leaks are read as the text report of `leaks`.

    Raises:
        ValueError: If the template has no known export
    """
    if template == "leaks":
        # `leaks` reads a pid or a .memgraph; a .trace bundle it cannot open
        # yields a nonzero exit with no report, so this template then degrades.
        return [xcrun_path, "leaks", str(trace_path)]

    schema = EXPORT_SCHEMAS.get(template)
    if schema is None:
        raise ValueError(f"No export defined for template '{template}'")

    return [
        xcrun_path, "xctrace", "export",
        "--input", str(trace_path),
        "--xpath", build_export_xpath(schema),
    ]
