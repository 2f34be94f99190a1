"""
Function calling.

Executes function calls requested by the AI. A call is routed to:
1. the automation server, when it is the generic ``callAgent`` call;
2. a local handler, when its name is registered in the FunctionRegistry;
3. the automation server under its own name, otherwise.

Every outcome is normalized to ``{"success": True, ...}`` or
``{"error": "...", "code": "..."}``; dispatch never raises.
"""

import json
import logging
from typing import Any, Dict, Optional

from gptbridge.api.automation import AutomationClient
from gptbridge.core.constants import GENERIC_AUTOMATION_FUNCTION
from gptbridge.core.errors import BridgeError, OperationTimedOut, ValidationError
from gptbridge.core.registry import FunctionRegistry
from gptbridge.models import AutomationRequest, AutomationResponse, FunctionCallRequest

logger = logging.getLogger(__name__)

# Confirmation sentences for the local chat actions
FRIENDLY_MESSAGES = {
    "sendMessage": "I've sent your message to the channel.",
    "updateMessage": "I've updated the message.",
    "sendDirectMessage": "I've sent your direct message to the user.",
}


def _error_result(message: str, code: Optional[str] = None) -> Dict[str, Any]:
    result: Dict[str, Any] = {"error": message}
    if code:
        result["code"] = code
    return result


def _success_result(payload: Any) -> Dict[str, Any]:
    if payload is None:
        return {"success": True}
    if isinstance(payload, dict):
        if "error" in payload:
            return _error_result(str(payload["error"]), payload.get("code"))
        return {**payload, "success": True}
    return {"success": True, "data": payload}


class FunctionDispatcher:
    """Routes function calls to local handlers or the automation server."""

    def __init__(self, registry: FunctionRegistry, automation: AutomationClient):
        self.registry = registry
        self.automation = automation

    async def dispatch(self, call: FunctionCallRequest) -> Dict[str, Any]:
        """Execute a function call and normalize its result.

        Args:
            call: Function name and arguments from the AI response

        Returns:
            Normalized result dict
        """
        logger.info(f"[DISPATCH] Handling function call: {call.name}")
        try:
            if call.name == GENERIC_AUTOMATION_FUNCTION:
                return await self._run_automation(self._generic_request(call))

            if call.name in self.registry:
                return _success_result(await self.registry.execute(call.name, call.arguments))

            return await self._run_automation(
                AutomationRequest(action=call.name, parameters=call.arguments)
            )
        except BridgeError as e:
            logger.error(f"[DISPATCH] Error handling function call {call.name}: {e.message}")
            return _error_result(e.message, e.code)
        except Exception as e:
            logger.exception(f"[DISPATCH] Error handling function call {call.name}")
            return _error_result(f"Failed to execute function: {e}")

    @staticmethod
    def _generic_request(call: FunctionCallRequest) -> AutomationRequest:
        action = call.arguments.get("action")
        parameters = call.arguments.get("parameters")

        if not isinstance(action, str) or not action.strip():
            raise ValidationError("Invalid action: action must be a non-empty string", field="action")
        if not isinstance(parameters, dict):
            raise ValidationError("Invalid parameters: parameters must be an object", field="parameters")

        return AutomationRequest(action=action, parameters=parameters)

    async def _run_automation(self, request: AutomationRequest) -> Dict[str, Any]:
        response = await self.automation.call_with_retry(request)

        if response.status == "pending":
            if not response.operation_id:
                return _error_result("Pending response without an operation id", "MCP_ERROR")
            logger.info(f"[DISPATCH] Operation pending, waiting for completion: {response.operation_id}")
            response = await self.automation.wait_for_operation(response.operation_id)

        return self._normalize(response)

    def _normalize(self, response: AutomationResponse) -> Dict[str, Any]:
        if response.status == "success":
            return _success_result(response.data)

        if response.status == "timed_out":
            timeout = OperationTimedOut(response.operation_id or "unknown", self.automation.max_wait)
            return _error_result(timeout.message, timeout.code)

        error = response.error
        return _error_result(error.message if error else "Unknown error", error.code if error else None)


def format_function_call_result(function_name: str, result: Dict[str, Any]) -> str:
    """Render a dispatched result for the chat reply.

    Args:
        function_name: Name of the function that was called
        result: Normalized dispatcher result

    Returns:
        A short user-facing sentence
    """
    if "error" in result:
        if result.get("code") == "TIMED_OUT":
            return f"The {function_name} action is still running and did not finish in time: {result['error']}"
        return f"Error executing function {function_name}: {result['error']}"

    if function_name in FRIENDLY_MESSAGES:
        return FRIENDLY_MESSAGES[function_name]

    if isinstance(result.get("message"), str) and result["message"]:
        return result["message"]

    details = {key: value for key, value in result.items() if key != "success"}
    if not details:
        return f"I've successfully completed the {function_name} action."

    try:
        rendered = json.dumps(details, indent=2, default=str)
    except (TypeError, ValueError):
        rendered = str(details)
    return f"I've successfully completed the {function_name} action:\n{rendered}"
