import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from quizpath.core.constants import NodeTypeEnum
from quizpath.core.exceptions import PathInvariantError, StructuralError
from quizpath.schemas.path import PathNode, PathValidationResult, QuestionPathInfo

logger = logging.getLogger(__name__)

QUESTION_NODE_TYPES = {NodeTypeEnum.QUESTION, NodeTypeEnum.PATH}
TERMINATING_NODE_TYPES = {NodeTypeEnum.END, NodeTypeEnum.BREAK}


def _describe_invalid_node(error: ValidationError, location: str) -> List[str]:
    messages = []
    for detail in error.errors():
        loc = [str(part) for part in detail.get("loc", ())]
        field = loc.pop() if loc else None
        where = location + "".join(f".{part}" for part in loc)
        if field == "type" and detail.get("type") != "missing":
            messages.append(f"Invalid type '{detail.get('input')}' at {where}")
        elif field:
            messages.append(f"Invalid node at {where}: '{field}' {detail['msg'].lower()}")
        else:
            messages.append(f"Invalid node at {where}: {detail['msg'].lower()}")
    return messages


def _coerce_nodes(path_logic: Iterable[Union[PathNode, Dict[str, Any]]]) -> Tuple[List[Optional[PathNode]], List[str]]:
    """Parse raw nodes, leaving None in place of each node that fails and describing why."""
    nodes: List[Optional[PathNode]] = []
    errors: List[str] = []
    for index, node in enumerate(path_logic):
        if isinstance(node, PathNode):
            nodes.append(node)
            continue
        try:
            nodes.append(PathNode.model_validate(node))
        except ValidationError as e:
            nodes.append(None)
            errors.extend(_describe_invalid_node(e, f"path[{index}]"))
    return nodes, errors


def validate_path_logic(path_logic: Sequence[Union[PathNode, Dict[str, Any]]]) -> PathValidationResult:
    """
    Check a path structure before it is stored.

    Reports malformed nodes, question/path nodes without a question id,
    duplicate question ids, duplicate labels, gotos without a target and gotos
    whose target label does not exist. Gotos that jump back to an earlier node
    are legal retry loops and are only reported as warnings. The input is
    never modified.
    """
    if not path_logic:
        return PathValidationResult(valid=False, errors=["Path structure is empty"])

    nodes, errors = _coerce_nodes(path_logic)
    warnings: List[str] = []

    label_locations: Dict[str, Tuple[int, str]] = {}
    question_locations: Dict[int, str] = {}
    goto_references: List[Tuple[str, int, str]] = []

    order = 0
    stack = [(node, f"path[{index}]") for index, node in reversed(list(enumerate(nodes))) if node is not None]
    while stack:
        node, location = stack.pop()
        order += 1

        if node.type in QUESTION_NODE_TYPES:
            if node.question_id is None:
                errors.append(f"{node.type.value.capitalize()} node missing question_id at {location}")
            elif node.question_id in question_locations:
                errors.append(
                    f"Duplicate question ID {node.question_id} at {location} "
                    f"(already used at {question_locations[node.question_id]})"
                )
            else:
                question_locations[node.question_id] = location

        if node.type == NodeTypeEnum.GOTO:
            if not node.goto:
                errors.append(f"Goto node missing goto label at {location}")
            else:
                goto_references.append((node.goto, order, location))

        if node.label:
            if node.label in label_locations:
                errors.append(
                    f"Duplicate label '{node.label}' at {location} "
                    f"(already used at {label_locations[node.label][1]})"
                )
            else:
                label_locations[node.label] = (order, location)

        if node.answers:
            if node.type not in QUESTION_NODE_TYPES:
                warnings.append(f"Answers on {node.type.value} node at {location} are ignored")
                continue
            for answer_key, child in reversed(list(node.answers.items())):
                stack.append((child, f"{location}.answers.{answer_key}"))

    for label, goto_order, location in goto_references:
        if label not in label_locations:
            errors.append(f"Goto reference '{label}' at {location} has no matching label")
            continue
        target_order, target_location = label_locations[label]
        if target_order <= goto_order:
            warnings.append(f"Goto '{label}' at {location} loops back to {target_location}")

    return PathValidationResult(valid=not errors, errors=errors, warnings=warnings)


class GraphNode:
    __slots__ = ("node_id", "kind", "question_id", "label", "goto", "branches", "parent_id", "root_index")

    def __init__(self, node_id: int, kind: NodeTypeEnum, question_id: Optional[int], label: Optional[str],
                 goto: Optional[str], parent_id: Optional[int], root_index: int):
        self.node_id = node_id
        self.kind = kind
        self.question_id = question_id
        self.label = label
        self.goto = goto
        self.branches: Dict[str, int] = {}
        self.parent_id = parent_id
        self.root_index = root_index

    @property
    def is_question(self) -> bool:
        return self.kind in QUESTION_NODE_TYPES

    def __repr__(self) -> str:
        return f"GraphNode(id={self.node_id}, kind={self.kind.value}, question_id={self.question_id}, label={self.label})"


class PathGraph:
    """
    Read-only arena of path nodes addressed by integer ids.

    Children are referenced by id and gotos by label, so cyclic questionnaires
    never produce cyclic object graphs. Build with `PathGraph.build`.
    """

    def __init__(self, nodes: List[GraphNode], root_ids: List[int],
                 by_question_id: Dict[int, int], by_label: Dict[str, int]):
        self._nodes = nodes
        self._root_ids = root_ids
        self._by_question_id = by_question_id
        self._by_label = by_label
        self._path_map = self._build_path_map()

    @classmethod
    def build(cls, path_logic: Sequence[Union[PathNode, Dict[str, Any]]]) -> "PathGraph":
        result = validate_path_logic(path_logic)
        if not result.valid:
            raise StructuralError(result.errors)
        source, _ = _coerce_nodes(path_logic)

        nodes: List[GraphNode] = []
        root_ids: List[int] = []
        by_question_id: Dict[int, int] = {}
        by_label: Dict[str, int] = {}

        stack = [(node, None, index, None) for index, node in reversed(list(enumerate(source)))]
        while stack:
            node, parent_id, root_index, answer_key = stack.pop()
            graph_node = GraphNode(
                node_id=len(nodes),
                kind=node.type,
                question_id=node.question_id,
                label=node.label,
                goto=node.goto,
                parent_id=parent_id,
                root_index=root_index,
            )
            nodes.append(graph_node)

            if parent_id is None:
                root_ids.append(graph_node.node_id)
            else:
                nodes[parent_id].branches[answer_key] = graph_node.node_id

            if graph_node.is_question:
                by_question_id[graph_node.question_id] = graph_node.node_id
            if graph_node.label:
                by_label[graph_node.label] = graph_node.node_id

            if graph_node.is_question and node.answers:
                for key, child in reversed(list(node.answers.items())):
                    stack.append((child, graph_node.node_id, root_index, str(key)))

        return cls(nodes, root_ids, by_question_id, by_label)

    @property
    def root_ids(self) -> List[int]:
        return list(self._root_ids)

    @property
    def by_question_id(self) -> Dict[int, int]:
        return dict(self._by_question_id)

    @property
    def by_label(self) -> Dict[str, int]:
        return dict(self._by_label)

    @property
    def question_ids(self) -> List[int]:
        return [node.question_id for node in self._nodes if node.is_question]

    @property
    def path_map(self) -> Dict[int, QuestionPathInfo]:
        return dict(self._path_map)

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, node_id: int) -> GraphNode:
        return self._nodes[node_id]

    def node_for_question(self, question_id: int) -> Optional[GraphNode]:
        node_id = self._by_question_id.get(question_id)
        return self._nodes[node_id] if node_id is not None else None

    def node_for_label(self, label: str) -> Optional[GraphNode]:
        node_id = self._by_label.get(label)
        return self._nodes[node_id] if node_id is not None else None

    def goto_target(self, node: GraphNode) -> GraphNode:
        target = self.node_for_label(node.goto) if node.goto else None
        if target is None:
            raise PathInvariantError(f"Goto label '{node.goto}' does not resolve to a node")
        return target

    def path_info(self, question_id: int) -> Optional[QuestionPathInfo]:
        return self._path_map.get(question_id)

    def next_sibling_id(self, node_id: int) -> Optional[int]:
        """Node that follows the top-level ancestor of `node_id` in document order."""
        next_index = self._nodes[node_id].root_index + 1
        if next_index < len(self._root_ids):
            return self._root_ids[next_index]
        return None

    def landing_question_id(self, node_id: Optional[int]) -> Optional[int]:
        """Question reached when navigation arrives at `node_id`, following gotos and breaks."""
        seen = set()
        current = node_id
        while current is not None:
            if current in seen:
                logger.warning(f"Goto/break chain starting at node {node_id} never reaches a question")
                return None
            seen.add(current)

            node = self._nodes[current]
            if node.is_question:
                return node.question_id
            if node.kind == NodeTypeEnum.END:
                return None
            if node.kind == NodeTypeEnum.GOTO:
                current = self.goto_target(node).node_id
            else:
                current = self.next_sibling_id(current)
        return None

    def first_question_id(self) -> Optional[int]:
        if not self._root_ids:
            return None
        return self.landing_question_id(self._root_ids[0])

    def _build_path_map(self) -> Dict[int, QuestionPathInfo]:
        path_map: Dict[int, QuestionPathInfo] = {}
        for node in self._nodes:
            if not node.is_question:
                continue

            if node.branches:
                candidates = [
                    child_id for child_id in node.branches.values()
                    if self._nodes[child_id].kind not in TERMINATING_NODE_TYPES
                ]
            else:
                sibling_id = self.next_sibling_id(node.node_id)
                candidates = [sibling_id] if sibling_id is not None else []

            next_questions: List[int] = []
            for candidate in candidates:
                question_id = self.landing_question_id(candidate)
                if question_id is not None and question_id not in next_questions:
                    next_questions.append(question_id)

            path_map[node.question_id] = QuestionPathInfo(
                question_id=node.question_id,
                possible_next_questions=next_questions,
                is_end_node=not next_questions,
            )
        return path_map
