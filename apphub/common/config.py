import json
import os
from pathlib import Path
from typing import List, Mapping, NamedTuple, Optional, TypedDict


class Config(NamedTuple):
    """App configuration."""

    aws_account_id: str
    aws_region: str
    deployment_target: str
    email_grant_max_age: int
    grant_cookie_prefix: str
    grant_secret_param: str
    log_level: str
    magic_token_max_age: int
    main_table: str
    max_bundle_bytes: int
    max_bundle_files: int
    password_grant_max_age: int
    static_cache_max_age: int
    storage_backend: str
    storage_bucket: str
    storage_root: str
    viewer_path_base: str
    website_origin: str


class CloudFrontParam(TypedDict):
    """CloudFront parameter values.

    .. _AWS docs:
        https://docs.aws.amazon.com/AWSCloudFormation/latest/APIReference/API_Parameter.html
    """

    ParameterKey: str
    ParameterValue: str


def _build_config(env: Mapping[str, str], params: List[CloudFrontParam],
                  deployment_target: str = 'dev') -> Config:
    """Build configuration object for the application.

    Args:
        env: A mapping object representing the string environment (os.environ).
        params: A list of Cloudfront parameters as expected by
            aws.templates.create-stack.
            .. _AWS docs:
                https://docs.aws.amazon.com/cli/latest/reference/cloudformation/create-stack.html#options
        deployment_target: One of 'dev', 'staging' or 'production'.

    Returns:
        The configuration object.

    Raises:
        ValueError if the storage backend is not supported.

    """
    pdict = {p['ParameterKey']: p['ParameterValue'] for p in params}
    # These parameters are expected in the config, it should be an error if
    # they are missing from `pdict`.
    grant_secret_param = pdict['GrantSecretParamName']
    storage_bucket = pdict['StorageBucketName']
    # Single quotes are necessary for CloudFormation template, but not in the
    # app
    site_origin = pdict['WebsiteOrigin'].replace('\'', '')

    # Ok for unit tests and functions that don't use it if there is no env var.
    # AWS Lambda default environment variables:
    aws_region = env.get('AWS_REGION', 'UnknownRegion')
    # Environment variables set Cloudformation template:
    aws_account_id = env.get('AWS_ACCOUNT_ID', 'UnknownAccountId')
    main_table = env.get('MAIN_TABLE_NAME', 'UnknownTableName')
    # Local storage is for running the handlers outside of Lambda.
    storage_backend = env.get('STORAGE_BACKEND', 's3')
    storage_root = env.get('STORAGE_ROOT', '/tmp/apphub')
    if storage_backend not in ('s3', 'local'):
        raise ValueError(f'Unsupported storage backend: {storage_backend}')

    if env.get('TOX_TESTENV'):
        log_level = 'WARNING'
    else:
        log_level = pdict['LogLevel']

    return Config(
        aws_account_id=aws_account_id,
        aws_region=aws_region,
        deployment_target=deployment_target,
        email_grant_max_age=(30 * 24 * 60 * 60),  # seconds
        grant_cookie_prefix='apphub_grant',
        grant_secret_param=grant_secret_param,
        log_level=log_level,
        magic_token_max_age=(15 * 60),  # seconds
        main_table=main_table,
        max_bundle_bytes=(100 * 1024 * 1024),
        max_bundle_files=2000,
        password_grant_max_age=(24 * 60 * 60),  # seconds
        static_cache_max_age=(60 * 60),  # seconds
        storage_backend=storage_backend,
        storage_bucket=storage_bucket,
        storage_root=storage_root,
        viewer_path_base='/a/',
        website_origin=site_origin,
    )


_config: Optional[Config] = None


def _get_config() -> Config:
    """Lazy load config."""
    global _config
    if _config is None:
        target = os.environ.get('DEPLOYMENT_TARGET', 'dev')
        common_dir = Path(__file__).parent
        fname = f'configs/{target}.json'
        p = common_dir / fname
        with open(p) as f:
            _config = _build_config(os.environ, json.load(f), target)
    return _config


def __getattr__(name: str) -> Config:
    """Get a module level attribute.

    (New in Python 3.7.)
    """
    if name == 'config':
        return _get_config()
    else:
        raise AttributeError(f"module {__name__} has no attribute {name}")
