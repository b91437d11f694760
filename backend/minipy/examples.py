"""Built-in example programs offered by the visualizer.

Each example carries the inputs it is traced with and the exact output lines
the trace must produce; the test suite checks every entry.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Example:
    id: str
    label: str
    code: str
    expected_output: Tuple[str, ...]
    inputs: Tuple[str, ...] = ()


BUBBLE_SORT = """\
def bubble_sort(arr):
    n = len(arr)
    for i in range(n):
        for j in range(0, n - i - 1):
            if arr[j] > arr[j + 1]:
                arr[j], arr[j + 1] = arr[j + 1], arr[j]
    return arr

result = bubble_sort([5, 3, 8, 1, 2])
print(result)
"""

BINARY_SEARCH = """\
def binary_search(arr, target):
    low = 0
    high = len(arr) - 1
    while low <= high:
        mid = (low + high) // 2
        if arr[mid] == target:
            return mid
        elif arr[mid] < target:
            low = mid + 1
        else:
            high = mid - 1
    return -1

result = binary_search([1, 3, 5, 7, 9, 11, 15, 18, 22], 7)
print(result)
"""

FIBONACCI = """\
def fibonacci(n):
    if n <= 1:
        return n
    return fibonacci(n - 1) + fibonacci(n - 2)

print(fibonacci(5))
"""

STACK = """\
stack = []
stack.append(10)
stack.append(20)
stack.append(30)
print("peek() →", stack[-1])
print("pop() →", stack.pop())
print("pop() →", stack.pop())
print("Stack:", stack)
"""

SQUARES = """\
arr = [0, 0, 0]
for i in range(3):
    arr[i] = i * i
print(arr)
"""

SUM_INPUTS = """\
n = int(input("How many numbers? "))
total = 0
for i in range(n):
    value = int(input("Number: "))
    total += value
print("Total:", total)
"""

EXAMPLES: List[Example] = [
    Example("bubble-sort", "Bubble Sort", BUBBLE_SORT, ("[1, 2, 3, 5, 8]",)),
    Example("binary-search", "Binary Search", BINARY_SEARCH, ("3",)),
    Example("fibonacci", "Fibonacci (recursive)", FIBONACCI, ("5",)),
    Example("stack", "Stack (push/pop)", STACK, ("peek() → 30", "pop() → 30", "pop() → 20", "Stack: [10]")),
    Example("squares", "Squares in place", SQUARES, ("[0, 1, 4]",)),
    Example(
        "sum-inputs",
        "Sum of inputs",
        SUM_INPUTS,
        ("How many numbers? ", "3", "Number: ", "4", "Number: ", "5", "Number: ", "6", "Total: 15"),
        inputs=("3", "4", "5", "6"),
    ),
]

_BY_ID: Dict[str, Example] = {example.id: example for example in EXAMPLES}


def get_example(example_id: str) -> Optional[Example]:
    return _BY_ID.get(example_id)
