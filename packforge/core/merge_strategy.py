# packforge/core/merge_strategy.py
from __future__ import annotations
from typing import Any, Literal, cast
from collections.abc import Mapping, Sequence
import copy

from packforge.core.dictpath import getByPath, setByPath, deleteByPath
from packforge.core.errors import MergeError

__all__ = [
    "MergeStrategy", "InstructionAction",
    "mergeWithStrategy", "applyInstructions",
]



MergeStrategy = Literal["deep", "replace", "append", "prepend", "uniqueAppend"]
_ALL_STRATEGIES: tuple[str, ...] = ("deep", "replace", "append", "prepend", "uniqueAppend")
_LIST_STRATEGIES: tuple[str, ...] = ("replace", "append", "prepend", "uniqueAppend")

InstructionAction = Literal["replace", "remove", "arrayAdd", "arrayConcat", "objectMerge"]
_ACTIONS: tuple[str, ...] = ("replace", "remove", "arrayAdd", "arrayConcat", "objectMerge")
# Action names match case-insensitively ("ArrayAdd" == "arrayAdd")
_ACTION_LOOKUP = {action.lower(): action for action in _ACTIONS}

_DIRECTIVE = "__merge"
_WRAPPED_VALUE = "__value"
_SIDE_SUFFIX = "__merge"



# ------------------------------------------------------------------ #
# Deep merge with directives
# ------------------------------------------------------------------ #

def mergeWithStrategy(left: Any, right: Any) -> Any:
    """
    Applies patch document `right` onto `left` and returns a new value.

      - objects: keys union, values from `right` win at the same path;
        {"__merge": "replace"} on an object replaces it wholesale
      - lists: replaced wholesale unless a directive asks otherwise, either
        as a sibling key {"items": [...], "items__merge": "append"} or as a
        wrapper {"items": {"__value": [...], "__merge": "append"}}
      - scalars: `right` replaces `left`
    
    Neither input is mutated; directive keys never reach the output.
    """
    if _isListWrapper(right):
        if not isinstance(left, list):
            raise MergeError('List wrapper {"__value": [...], "__merge": ...} used where the target is not a list')
        strategy = _checkStrategy(right.get(_DIRECTIVE, "replace"), context="list wrapper", listContext=True)
        return _mergeLists(left, right[_WRAPPED_VALUE], strategy)
    
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        strategy = _checkStrategy(right.get(_DIRECTIVE, "deep"), context="object", listContext=False)
        if strategy == "replace":
            return {key: copy.deepcopy(value) for key, value in right.items() if not _isDirectiveKey(key)}
        
        out: dict[str, Any] = {key: copy.deepcopy(value) for key, value in left.items()}
        for key, rightValue in right.items():
            if _isDirectiveKey(key):
                if key != _DIRECTIVE and key[:-len(_SIDE_SUFFIX)] not in right:
                    raise MergeError(f'Directive "{key}" has no matching key "{key[:-len(_SIDE_SUFFIX)]}"')
                continue
            
            leftValue = out.get(key)
            sideKey = f"{key}{_SIDE_SUFFIX}"
            if sideKey in right and isinstance(rightValue, list):
                listStrategy = _checkStrategy(right[sideKey], context=f'key "{key}"', listContext=True)
                out[key] = _mergeLists(leftValue, rightValue, listStrategy)
                continue
            
            if _isListWrapper(rightValue):
                listStrategy = _checkStrategy(rightValue.get(_DIRECTIVE, "replace"), context=f'key "{key}"', listContext=True)
                out[key] = _mergeLists(leftValue, rightValue[_WRAPPED_VALUE], listStrategy)
                continue
            
            if isinstance(leftValue, Mapping) and isinstance(rightValue, Mapping):
                out[key] = mergeWithStrategy(leftValue, rightValue)
            else:
                out[key] = _stripDirectives(rightValue)
        return out
    
    return _stripDirectives(right)



def _isDirectiveKey(key: Any) -> bool:
    return isinstance(key, str) and key.endswith(_SIDE_SUFFIX)



def _isListWrapper(value: Any) -> bool:
    return (
        isinstance(value, Mapping)
        and _WRAPPED_VALUE in value
        and set(value.keys()) <= {_WRAPPED_VALUE, _DIRECTIVE}
        and isinstance(value[_WRAPPED_VALUE], list)
    )



def _stripDirectives(value: Any) -> Any:
    # New subtrees may still carry directives meant for deeper merges; they have nothing to merge onto.
    if _isListWrapper(value):
        return copy.deepcopy(list(value[_WRAPPED_VALUE]))
    if isinstance(value, Mapping):
        return {key: _stripDirectives(item) for key, item in value.items() if not _isDirectiveKey(key)}
    if isinstance(value, list):
        return [_stripDirectives(item) for item in value]
    return copy.deepcopy(value)



def _mergeLists(left: Any, right: Sequence[Any], strategy: MergeStrategy) -> list[Any]:
    left = list(left) if isinstance(left, list) else []
    right = [_stripDirectives(item) for item in right]
    if strategy == "append":
        return left + right
    if strategy == "prepend":
        return right + left
    if strategy == "uniqueAppend":
        out = left[:]
        for item in right:
            if not any(item == existing for existing in out):
                out.append(item)
        return out
    return right



def _checkStrategy(strategy: Any, *, context: str, listContext: bool) -> MergeStrategy:
    allowed = _LIST_STRATEGIES if listContext else _ALL_STRATEGIES
    if strategy not in allowed:
        raise MergeError(f"Invalid __merge='{strategy}' in {context}; allowed: {', '.join(allowed)}")
    return cast(MergeStrategy, strategy)



# ------------------------------------------------------------------ #
# Path instructions (targeted patch files)
# ------------------------------------------------------------------ #

def applyInstructions(document: Any, instructions: Sequence[Mapping[str, Any]]) -> Any:
    """
    Applies ordered path instructions to a copy of `document`.

    Each instruction is {"jsonPath": "<path>", "action": "<action>", "value": ...}:
      - replace:     set the value at path (parents created)
      - remove:      delete the value at path
      - arrayAdd:    append value to the list at path
      - arrayConcat: extend the list at path with the list value
      - objectMerge: deep-merge value into the object at path
    """
    out = copy.deepcopy(document)
    for index, instruction in enumerate(instructions):
        if not isinstance(instruction, Mapping):
            raise MergeError(f"Instruction #{index} is not an object")
        path = instruction.get("jsonPath") or instruction.get("JSONPath")
        rawAction = instruction.get("action") or instruction.get("Action")
        action = _ACTION_LOOKUP.get(rawAction.lower()) if isinstance(rawAction, str) else None
        value = instruction.get("value", instruction.get("Value"))
        if not isinstance(path, str) or not path:
            raise MergeError(f"Instruction #{index} has no jsonPath")
        if action is None:
            raise MergeError(f"Instruction #{index} has unknown action {rawAction!r}; allowed: {', '.join(_ACTIONS)}")
        
        try:
            if action == "replace":
                setByPath(out, path, copy.deepcopy(value), createIfMissing=True)
            elif action == "remove":
                if not deleteByPath(out, path):
                    raise MergeError(f"Instruction #{index}: nothing to remove at '{path}'")
            else:
                target = getByPath(out, path)
                if action == "objectMerge":
                    if not isinstance(target, Mapping) or not isinstance(value, Mapping):
                        raise MergeError(f"Instruction #{index}: objectMerge needs objects at '{path}'")
                    setByPath(out, path, mergeWithStrategy(target, value))
                elif not isinstance(target, list):
                    raise MergeError(f"Instruction #{index}: {action} needs a list at '{path}'")
                elif action == "arrayAdd":
                    target.append(copy.deepcopy(value))
                else:
                    if not isinstance(value, list):
                        raise MergeError(f"Instruction #{index}: arrayConcat needs a list value")
                    target.extend(copy.deepcopy(value))
        except (KeyError, IndexError, TypeError, ValueError) as err:
            raise MergeError(f"Instruction #{index} failed at '{path}': {err}") from err
    return out
