from typing import Any


# Type aliases for API Gateway / EventBridge payloads
type LambdaEvent = dict[str, Any]
type LambdaContext = Any
type LambdaConfiguration = dict[str, Any]

# Query string UTM parameters attached to a scan
type UTMParams = dict[str, str | None]
