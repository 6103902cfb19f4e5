"""Chat messages sent to the generation collaborator."""

from dataclasses import dataclass
from typing import Dict, List, Optional

from .sanitize import CODE_START_MARKER

SYSTEM_PROMPT = """You write JSCAD programs for a parametric CAD tool.
The program runs in a restricted interpreter. Available names:
primitives, booleans, transforms, extrusions, hulls, colors, measurements,
utils, Math and require('@jscad/modeling').
Do not use classes, imports, eval, fetch, timers or any browser or Node API.
Units are millimeters. The program must define main() returning a solid."""

GENERATE_TEMPLATE = """Generate JSCAD code for: "{prompt}"

AVAILABLE:
- primitives: cuboid, cube, cylinder, sphere, roundedCuboid, roundedCylinder, torus
- booleans: union, subtract, intersect
- transforms: translate, rotate, scale, mirror
- extrusions: extrudeLinear, extrudeRotate (from 2D rectangle, circle, polygon)

EXAMPLE:
const main = () => {{
  const shaft = primitives.cylinder({{ radius: 3, height: 30, segments: 32 }});
  const head = primitives.cylinder({{ radius: 5, height: 4, segments: 32 }});
  return booleans.union(shaft, transforms.translate([0, 0, 15], head));
}};

RULES:
- Return ONLY code (no markdown, no backticks)
- main() MUST return a geometry
- Use millimeters
- Keep it simple"""

MODIFY_TEMPLATE = """Modify this JSCAD code: "{prompt}"

EXISTING CODE:
{program}

RULES:
- Apply the modifications
- Keep the structure
- Return ONLY the complete JavaScript code, no markdown, no explanations"""

CORRECTION_TEMPLATE = """The following JSCAD code failed with the error: "{error}"

FAILED CODE:
{program}

ORIGINAL REQUEST: "{prompt}"

FIX the code so that it works. The code must:
1. Be syntactically correct
2. Use only the available JSCAD functions (primitives, booleans, transforms, extrusions, hulls)
3. Define a main() function that returns a geometry
4. Not use any unavailable function

Return ONLY the corrected JavaScript code, without explanations or markdown.
You may put a short analysis first, followed by a line "{marker}" and the code.
Start the code with "const main" or "function main"."""


@dataclass(frozen=True)
class GenerationRequest:
    """What the collaborator is asked to produce.

    With ``prior_program`` and ``prior_error`` set the request is a
    correction of a failed program; with only ``prior_program`` set it is
    a modification of a working one.
    """
    natural_language_spec: str
    prior_program: Optional[str] = None
    prior_error: Optional[str] = None

    @property
    def is_correction(self) -> bool:
        return self.prior_program is not None and self.prior_error is not None


def build_prompt(request: GenerationRequest) -> str:
    if request.is_correction:
        return CORRECTION_TEMPLATE.format(
            error=request.prior_error,
            program=request.prior_program,
            prompt=request.natural_language_spec,
            marker=CODE_START_MARKER,
        )
    if request.prior_program is not None:
        return MODIFY_TEMPLATE.format(prompt=request.natural_language_spec,
                                      program=request.prior_program)
    return GENERATE_TEMPLATE.format(prompt=request.natural_language_spec)


def build_messages(request: GenerationRequest) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_prompt(request)},
    ]


__all__ = ["SYSTEM_PROMPT", "GenerationRequest", "build_prompt", "build_messages"]
