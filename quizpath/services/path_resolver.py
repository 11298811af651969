import logging
from typing import Any, List, Optional, Tuple

from quizpath.core.constants import NodeTypeEnum
from quizpath.core.exceptions import NotFoundError, PathInvariantError
from quizpath.schemas.path import Resolution
from quizpath.services.path_graph import PathGraph

logger = logging.getLogger(__name__)


def normalize_answer_key(answer: Any) -> Optional[str]:
    # Multi-select answers branch on their first selection
    if isinstance(answer, (list, tuple)):
        answer = answer[0] if answer else None
    if answer is None:
        return None
    return str(answer)


class PathResolver:

    def resolve(self, graph: PathGraph, current_question_id: int, answer_key: Any = None) -> Resolution:
        node = graph.node_for_question(current_question_id)
        if node is None:
            raise NotFoundError(f"Question {current_question_id} is not part of this questionnaire's path logic.")

        if not node.branches:
            return self._advance(graph, node.node_id)

        key = normalize_answer_key(answer_key)
        child_id = node.branches.get(key) if key is not None else None
        if child_id is None:
            logger.warning(
                f"Question {current_question_id} has no branch for answer {key!r}; ending path. "
                f"Known answers: {list(node.branches)}"
            )
            return Resolution.end()

        return self._resolve_node(graph, child_id)

    def _advance(self, graph: PathGraph, node_id: int) -> Resolution:
        sibling_id = graph.next_sibling_id(node_id)
        if sibling_id is None:
            return Resolution.end()
        return self._resolve_node(graph, sibling_id)

    def _resolve_node(self, graph: PathGraph, node_id: int) -> Resolution:
        node = graph.node(node_id)

        if node.is_question:
            return Resolution.next_question(node.question_id)
        if node.kind == NodeTypeEnum.END:
            return Resolution.end()
        if node.kind == NodeTypeEnum.GOTO:
            target = graph.goto_target(node)
            return Resolution.redirect(node.goto, graph.landing_question_id(target.node_id))
        if node.kind == NodeTypeEnum.BREAK:
            return Resolution.break_out(graph.landing_question_id(graph.next_sibling_id(node_id)))

        raise PathInvariantError(f"Unhandled node type {node.kind!r} at node {node_id}")

    def enumerate_all_paths(self, graph: PathGraph, start_question_id: Optional[int] = None) -> List[List[int]]:
        """
        Every terminating sequence of question ids through the graph.

        Walks node ids depth-first with an explicit stack. Reaching a node that
        is already on the current path (a goto loop) ends that branch and the
        partial path is recorded.
        """
        if start_question_id is not None:
            start = graph.node_for_question(start_question_id)
            if start is None:
                raise NotFoundError(f"Question {start_question_id} is not part of this questionnaire's path logic.")
            start_id: Optional[int] = start.node_id
        else:
            roots = graph.root_ids
            if not roots:
                return []
            start_id = roots[0]

        paths: List[List[int]] = []
        stack: List[Tuple[Optional[int], Tuple[int, ...], frozenset]] = [(start_id, (), frozenset())]

        while stack:
            node_id, path, on_path = stack.pop()

            if node_id is None or node_id in on_path:
                self._record(paths, path)
                continue

            on_path = on_path | {node_id}
            node = graph.node(node_id)

            if node.is_question:
                path = path + (node.question_id,)
                if node.branches:
                    for child_id in reversed(list(node.branches.values())):
                        stack.append((child_id, path, on_path))
                else:
                    stack.append((graph.next_sibling_id(node_id), path, on_path))
            elif node.kind == NodeTypeEnum.END:
                self._record(paths, path)
            elif node.kind == NodeTypeEnum.GOTO:
                stack.append((graph.goto_target(node).node_id, path, on_path))
            elif node.kind == NodeTypeEnum.BREAK:
                stack.append((graph.next_sibling_id(node_id), path, on_path))

        return paths

    @staticmethod
    def _record(paths: List[List[int]], path: Tuple[int, ...]):
        if path:
            paths.append(list(path))


path_resolver = PathResolver()
