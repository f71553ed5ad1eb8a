"""
Function-call contracts shared by the prompt side and the response parser.

A contract couples a strict pydantic model with the function name the model
is forced to call. The same model produces the JSON schema sent to the LLM
and validates the arguments that come back, so the two cannot drift.
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, Generic, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from app.errors import SchemaViolation


class StrictModel(BaseModel):
    """Base for LLM payload models: no coercion, unknown keys dropped"""

    model_config = ConfigDict(strict=True, extra="ignore")


ModelT = TypeVar("ModelT", bound=StrictModel)


def _inline_refs(node: Any, defs: Dict[str, Any]) -> Any:
    """Replace $ref / single-item allOf nodes with the referenced definition"""
    if isinstance(node, list):
        return [_inline_refs(item, defs) for item in node]
    if not isinstance(node, dict):
        return node

    ref_holder = None
    if "$ref" in node:
        ref_holder = node
    elif isinstance(node.get("allOf"), list) and len(node["allOf"]) == 1 and "$ref" in node["allOf"][0]:
        ref_holder = node["allOf"][0]

    if ref_holder is not None:
        target = defs[ref_holder["$ref"].rsplit("/", 1)[-1]]
        merged = dict(target)
        # Keep annotations (description, title) attached at the use site
        merged.update({k: v for k, v in node.items() if k not in ("$ref", "allOf")})
        return _inline_refs(merged, defs)

    return {key: _inline_refs(value, defs) for key, value in node.items() if key != "$defs"}


@dataclass(frozen=True)
class FunctionContract(Generic[ModelT]):
    """A forced function call whose arguments must satisfy ``model``"""

    name: str
    description: str
    model: Type[ModelT]

    def parameters(self) -> Dict[str, Any]:
        """JSON schema of the arguments as a single self-contained tree"""
        schema = self.model.model_json_schema()
        return _inline_refs(schema, schema.get("$defs", {}))

    def tool_definition(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters(),
            },
        }

    def parse(self, arguments: Union[str, Dict[str, Any]]) -> ModelT:
        """
        Validate raw function-call arguments against the contract

        Args:
            arguments: JSON string (as returned by the API) or decoded dict

        Returns:
            Typed model instance

        Raises:
            SchemaViolation: If the payload is not JSON or does not match
        """
        if isinstance(arguments, str):
            try:
                payload = json.loads(arguments)
            except json.JSONDecodeError as e:
                raise SchemaViolation(
                    f"{self.name}: arguments are not valid JSON ({e.msg})",
                    raw_payload=arguments,
                )
        else:
            payload = arguments

        if not isinstance(payload, dict):
            raise SchemaViolation(
                f"{self.name}: expected a JSON object, got {type(payload).__name__}",
                raw_payload=arguments,
            )

        try:
            # JSON mode: nested objects validate as models, ints count as numbers
            return self.model.model_validate_json(json.dumps(payload), strict=True)
        except PydanticValidationError as e:
            fields = ", ".join(
                ".".join(str(part) for part in err["loc"]) or "<root>" for err in e.errors()
            )
            raise SchemaViolation(
                f"{self.name}: response does not match contract ({fields})",
                raw_payload=arguments,
            )
