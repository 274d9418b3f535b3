import argparse
import os
import sys
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Tuple
from urllib.parse import urlparse

from dotenv import load_dotenv

__version__ = '1.3.0'

DEFAULT_DOCKER_URI = 'unix:///var/run/docker.sock'
DEFAULT_ENV_FILE = '/etc/beekeeper-updater-swarm/.env'
DEFAULT_INTERVAL = 60


class ConfigError(Exception):
    pass


@dataclass
class Settings:
    docker_uri: str
    beekeeper_uri: str
    tags: Optional[str] = None
    check_interval: int = DEFAULT_INTERVAL
    docker_api_version: str = 'auto'
    request_timeout: float = 10.0


def parse_host(host: str) -> Tuple[str, str, str]:
    """Split a docker host string into (proto, addr, base_path).

    `tcp://10.0.0.1:2376/v1` -> ('tcp', '10.0.0.1:2376', '/v1'),
    `unix:///var/run/docker.sock` -> ('unix', '/var/run/docker.sock', '').
    """
    if '://' not in host:
        raise ConfigError(f"unable to parse docker host `{host}`")
    proto, addr = host.split('://', 1)
    base_path = ''
    if proto == 'tcp':
        parsed = urlparse('tcp://' + addr)
        addr = parsed.netloc
        base_path = parsed.path
    return proto, addr, base_path


def load_env_file(path: Optional[str]) -> bool:
    """Load KEY=VALUE pairs from a dotenv file without overriding the real environment."""
    if not path or not os.path.exists(path):
        return False
    return load_dotenv(path, override=False)


def build_parser(environ: Mapping[str, str]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='beekeeper-updater-swarm',
        description='Keep swarm services labeled octoblu.beekeeper.update=true on the latest beekeeper image',
    )
    parser.add_argument('--docker-uri', '-d', dest='docker_uri',
                        default=environ.get('DOCKER_HOST', DEFAULT_DOCKER_URI),
                        help='Docker server to deploy to [$DOCKER_HOST]')
    parser.add_argument('--beekeeper-uri', dest='beekeeper_uri',
                        default=environ.get('BEEKEEPER_URI'),
                        help='Beekeeper uri, it should include authentication [$BEEKEEPER_URI]')
    parser.add_argument('--tags', dest='tags', default=environ.get('BEEKEEPER_TAGS'),
                        help='Only deploy images carrying these beekeeper tags [$BEEKEEPER_TAGS]')
    parser.add_argument('--interval', dest='interval', default=environ.get('CHECK_INTERVAL', str(DEFAULT_INTERVAL)),
                        help='Seconds between passes [$CHECK_INTERVAL]')
    parser.add_argument('--docker-api-version', dest='docker_api_version',
                        default=environ.get('DOCKER_API_VERSION', 'auto'),
                        help='Docker API version [$DOCKER_API_VERSION]')
    parser.add_argument('--request-timeout', dest='request_timeout',
                        default=environ.get('REQUEST_TIMEOUT', '10'),
                        help='Beekeeper request timeout in seconds [$REQUEST_TIMEOUT]')
    parser.add_argument('--env-file', dest='env_file', default=environ.get('ENV_FILE', DEFAULT_ENV_FILE),
                        help='dotenv file loaded before reading the environment [$ENV_FILE]')
    parser.add_argument('--once', action='store_true', help='Run a single pass and exit')
    parser.add_argument('--test', action='store_true', help='Check Docker and beekeeper connectivity and exit')
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Validate parsed arguments. Raises ConfigError listing every missing value."""
    missing = []
    if not args.docker_uri:
        missing.append('Missing required flag --docker-uri or DOCKER_HOST')
    if not args.beekeeper_uri:
        missing.append('Missing required flag --beekeeper-uri or BEEKEEPER_URI')
    if missing:
        raise ConfigError('\n'.join(missing))

    parse_host(args.docker_uri)

    try:
        interval = int(args.interval)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid interval {args.interval!r}")
    if interval < 1:
        raise ConfigError(f"Interval must be at least 1 second, got {interval}")

    try:
        timeout = float(args.request_timeout)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid request timeout {args.request_timeout!r}")
    if timeout <= 0:
        raise ConfigError(f"Request timeout must be greater than 0 seconds, got {timeout}")

    return Settings(
        docker_uri=args.docker_uri,
        beekeeper_uri=args.beekeeper_uri,
        tags=args.tags or None,
        check_interval=interval,
        docker_api_version=args.docker_api_version or 'auto',
        request_timeout=timeout,
    )


def parse_args(argv: Optional[Sequence[str]] = None,
               environ: Optional[Mapping[str, str]] = None) -> Tuple[Settings, argparse.Namespace]:
    """Parse flags with environment fallbacks.

    On a configuration error prints the usage text and the problems to stderr
    and exits with status 1.
    """
    if environ is None:
        pre = argparse.ArgumentParser(add_help=False)
        pre.add_argument('--env-file', dest='env_file', default=os.getenv('ENV_FILE', DEFAULT_ENV_FILE))
        known, _ = pre.parse_known_args(argv)
        load_env_file(known.env_file)
        environ = os.environ

    parser = build_parser(environ)
    args = parser.parse_args(argv)
    try:
        settings = settings_from_args(args)
    except ConfigError as e:
        parser.print_help(sys.stderr)
        print('', file=sys.stderr)
        for line in str(e).splitlines():
            print(f"  {line}", file=sys.stderr)
        sys.exit(1)
    return settings, args
