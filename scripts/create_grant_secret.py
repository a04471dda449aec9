#!/usr/bin/env python3
"""Create the grant token signing secret in AWS SSM Parameter Store."""
import argparse
import base64
import json
import logging
import secrets
from typing import Dict, List

import boto3

import toml


# HMAC-SHA256 key size
_SECRET_BYTES = 32


def _get_from_config(configs: List[Dict[str, str]], key: str) -> str:
    try:
        value = next(el['ParameterValue'] for el in configs
                     if el['ParameterKey'] == key)
        return value
    except StopIteration:
        raise KeyError(f'Key {key} not found in configs')


parser = argparse.ArgumentParser(description=__doc__)
parser.add_argument('-t', '--target', type=str, required=True,
                    choices=('dev', 'staging', 'production'),
                    help='Deployment target')
parser.add_argument('--rotate', action='store_true',
                    help='Overwrite an existing secret. Invalidates all '
                         'issued grants.')
args = parser.parse_args()

with open(f'apphub/common/configs/{args.target}.json') as f:
    configs = json.load(f)
with open('samconfig.toml') as f:
    sam_config = toml.load(f)

param_name = _get_from_config(configs, 'GrantSecretParamName')
region = sam_config['default']['deploy']['parameters']['region']

secret = base64.b64encode(secrets.token_bytes(_SECRET_BYTES)).decode('ascii')
ssm_client = boto3.client('ssm', region_name=region)
ssm_client.put_parameter(
    Name=param_name,
    Description='Signing secret of apphub access grants',
    Value=secret,
    Type='SecureString',
    Overwrite=args.rotate
)
logging.info(f'Created grant signing secret "{param_name}" in {region}')
