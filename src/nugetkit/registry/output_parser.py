"""parsing of nuget.exe 'list' and 'search' console output."""
import re
from typing import List

from ..domain.models import PackageDescription

# lines nuget.exe prints around the actual results of 'list'
_LIST_NOISE_PREFIXES = (
    "using credentials from config",
    "warning: this version of nuget.exe does not support listing packages",
)

_SEARCH_LINE = re.compile(r"^> (.*?) \| (.*?) \| Downloads.*?$")


def output_lines(output: str) -> List[str]:
    return output.splitlines()


def parse_list_output(output: str, package_id: str) -> List[PackageDescription]:
    """
    descriptions for package_id found in 'nuget list' output.

    the output has one '<id> <version>' line per hit, for example:

        Using credentials from config. UserName: user@domain.com
        AcklenAvenue.Queueing.Serializers.JsonNet 1.0.1.39
        Common.Serializer.NewtonsoftJson 0.2.0-pre

    every line whose id matches (ignoring case) is returned, in output order.
    """
    wanted = package_id.casefold()
    result = []
    for line in output_lines(output):
        if line.casefold().startswith(_LIST_NOISE_PREFIXES):
            continue
        tokens = line.split(" ")
        if len(tokens) < 2 or tokens[0].casefold() != wanted:
            continue
        version = tokens[1].strip()
        if version:
            result.append(PackageDescription(id=package_id, version=version))
    return result


def parse_search_output(output: str, package_id: str) -> List[PackageDescription]:
    """
    descriptions for package_id found in 'nuget search' output.

    hits look like '> Newtonsoft.Json | 13.0.3 | Downloads: 4,000,000,000'.
    """
    wanted = package_id.casefold()
    result = []
    for line in output_lines(output):
        match = _SEARCH_LINE.match(line)
        if not match:
            continue
        found_id, version = match.group(1).strip(), match.group(2).strip()
        if found_id and version and found_id.casefold() == wanted:
            result.append(PackageDescription(id=package_id, version=version))
    return result
