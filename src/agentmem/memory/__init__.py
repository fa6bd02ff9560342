"""Persistent typed memory: procedures, episodes and semantic facts.

Layout (scope root R):
    ~/.agentmem/memory/                # global scope
    <project>/.agentmem/memory/        # project scope
    ├── procedural.json                # {"memories": [Procedure, ...]}
    ├── episodic.json                  # {"memories": [Episode, ...]}
    ├── semantic.json                  # {"memories": [Fact, ...]}
    └── .versions/                     # previous file versions, corrupt copies

The scope for a project is chosen by `<project>/.agentmem.json`
(`{"memory": {"scope": "project"}}`), falling back to the configured default.
"""
