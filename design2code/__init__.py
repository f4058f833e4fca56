"""Design-to-code generation package.

Subpackages:
- integrations: Remote service clients (Figma REST API, Gemini generateContent)
- design: Node model, tree walking, metadata simplification, batch extraction
- prompts: Token budgeting, prompt sections, strategy compilation, page structure
- generation: Retry policy, response cache, orchestration, code validation
"""

__version__ = "0.1.0"
