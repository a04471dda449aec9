# lambda is a reserved name in Python, hence the module name lambd
from typing import Any, Dict, List, Optional, Protocol, TypedDict


class _Identity(Protocol):
    cognito_identity_id: str
    cognito_identity_pool_id: str


class LambdaContext(Protocol):
    """Lambda context object type.

    .. _AWS docs:
        https://docs.aws.amazon.com/lambda/latest/dg/python-context-object.html  # noqa 501

    """

    function_name: str
    function_version: str
    invoked_function_arn: str
    memory_limit_in_mb: str
    aws_request_id: str
    log_group_name: str
    log_stream_name: str
    identity: _Identity


class _Claims(TypedDict, total=False):
    email: str
    email_verified: str
    exp: str
    iat: str
    iss: str
    sub: str


class _Authorizer(TypedDict, total=False):
    # Included if authorization type is COGNITO_USER_POOLS
    claims: _Claims
    # Included if authorization type is CUSTOM
    principalId: str


class _RequestContext(TypedDict, total=False):
    authorizer: _Authorizer
    domainName: str
    requestId: str


class _ProxyEventTotal(TypedDict):
    httpMethod: str
    path: str
    headers: Optional[Dict[str, str]]
    pathParameters: Optional[Dict[str, str]]
    requestContext: _RequestContext
    queryStringParameters: Optional[Dict[str, str]]


class ProxyEvent(_ProxyEventTotal, total=False):
    """AWS Lambda API Gateway Proxy event.

    Only includes members used by the app.

    .. _AWS docs:
         https://docs.aws.amazon.com/apigateway/latest/developerguide/set-up-lambda-proxy-integrations.html

    """

    # JSON string
    body: Optional[str]
    isBase64Encoded: bool
    multiValueHeaders: Dict[str, List[str]]


class ProxyResponse(TypedDict, total=False):
    """AWS Lambda API Gateway Proxy integration response.

    .. _AWS docs:
        https://docs.aws.amazon.com/apigateway/latest/developerguide/set-up-lambda-proxy-integrations.html

    """

    isBase64Encoded: bool
    statusCode: int
    headers: Dict[str, str]
    multiValueHeaders: Dict[str, List[str]]
    body: str


JsonDict = Dict[str, Any]
