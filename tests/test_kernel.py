"""
Tests for the geometry kernel: primitives, transforms, extrusions, hulls,
measurements and booleans.

Every solid built here is checked for a closed, consistently wound boundary
by converting it to a trimesh and asking whether it is watertight with a
positive volume.
"""

import math

import pytest

from morphos.errors import KernelError
from morphos.kernel import Outline, Solid, make_outline
from morphos.kernel import primitives, transforms, extrusions, hulls, measurements
from morphos.kernel.booleans import _solid_to_mesh
from morphos.kernel.capabilities import GROUPS, MODULE_NAME, build_capabilities, default_capabilities
from morphos.kernel.triangulator import triangulate_outline


def assert_closed(solid):
    """The solid is watertight and wound outward."""
    mesh = _solid_to_mesh(solid)
    assert mesh.is_watertight
    assert mesh.volume > 0
    return mesh


def volume(solid):
    return measurements.measure_volume(solid)


def ngon_area(n, r):
    return 0.5 * n * r * r * math.sin(2 * math.pi / n)


# =============================================================================
# Primitives
# =============================================================================

class TestPrimitives:
    """3D primitive constructors."""

    def test_cuboid_volume_and_bounds(self):
        """cuboid has the requested size and centre."""
        box = primitives.cuboid({"size": [2, 3, 4], "center": [1, 1, 1]})
        assert_closed(box)
        assert volume(box) == pytest.approx(24)
        assert measurements.measure_bounding_box(box) == [[0, -0.5, -1], [2, 2.5, 3]]

    def test_cuboid_defaults(self):
        """Missing, null and undefined options select defaults."""
        assert volume(primitives.cuboid()) == pytest.approx(8)
        assert volume(primitives.cuboid({"size": None})) == pytest.approx(8)

    def test_cube(self):
        """cube takes a scalar size."""
        assert volume(primitives.cube({"size": 3})) == pytest.approx(27)

    @pytest.mark.parametrize("options", [
        {"size": [1, 0, 1]},
        {"size": [1, -1, 1]},
        {"size": [1, 1]},
        {"size": "big"},
        {"size": [1, float("nan"), 1]},
    ])
    def test_cuboid_rejects_bad_size(self, options):
        """Invalid sizes raise KernelError."""
        with pytest.raises(KernelError):
            primitives.cuboid(options)

    def test_options_must_be_object(self):
        """A non-object options argument is rejected."""
        with pytest.raises(KernelError, match="options object"):
            primitives.cuboid(5)

    def test_cylinder(self):
        """cylinder volume matches its polygonal cross-section."""
        cyl = primitives.cylinder({"height": 2, "radius": 1, "segments": 32})
        assert_closed(cyl)
        assert volume(cyl) == pytest.approx(ngon_area(32, 1) * 2)

    def test_cone_from_elliptic_cylinder(self):
        """A zero end radius gives an apex."""
        cone = primitives.cylinder_elliptic({
            "height": 3, "startRadius": [1, 1], "endRadius": [0, 0], "segments": 16,
        })
        assert_closed(cone)
        assert volume(cone) == pytest.approx(ngon_area(16, 1) * 3 / 3)

    def test_elliptic_cylinder_rejects_mixed_zero(self):
        """A radius with one zero component is rejected."""
        with pytest.raises(KernelError):
            primitives.cylinder_elliptic({"startRadius": [1, 0]})

    @pytest.mark.parametrize("segments", [2, 2.5, 5000])
    def test_segments_validated(self, segments):
        """segments must be an integer within limits."""
        with pytest.raises(KernelError):
            primitives.cylinder({"segments": segments})

    def test_sphere(self):
        """sphere approximates the true volume from below."""
        ball = primitives.sphere({"radius": 2, "segments": 32})
        assert_closed(ball)
        exact = 4 / 3 * math.pi * 8
        assert 0.9 * exact < volume(ball) < exact

    def test_ellipsoid_bounds(self):
        """ellipsoid radii set the bounding box."""
        egg = primitives.ellipsoid({"radius": [1, 2, 3], "segments": 16})
        assert_closed(egg)
        lo, hi = egg.bounds()
        assert hi[2] == pytest.approx(3)
        assert lo[2] == pytest.approx(-3)

    def test_torus(self):
        """torus is a closed ring around Z."""
        ring = primitives.torus({"innerRadius": 1, "outerRadius": 4,
                                 "innerSegments": 16, "outerSegments": 24})
        assert_closed(ring)
        dims = measurements.measure_dimensions(ring)
        assert dims[0] == pytest.approx(10, rel=0.02)
        assert dims[2] == pytest.approx(2, rel=0.02)

    def test_torus_rejects_inner_larger(self):
        """The tube cannot be wider than the ring."""
        with pytest.raises(KernelError):
            primitives.torus({"innerRadius": 5, "outerRadius": 4})

    def test_rounded_cuboid(self):
        """roundedCuboid is slightly smaller than its box."""
        rounded = primitives.rounded_cuboid({"size": [4, 4, 4], "roundRadius": 0.5, "segments": 8})
        assert_closed(rounded)
        assert 50 < volume(rounded) < 64
        assert measurements.measure_dimensions(rounded) == pytest.approx([4, 4, 4], rel=0.01)

    def test_rounded_cuboid_radius_too_large(self):
        """roundRadius must fit inside the box."""
        with pytest.raises(KernelError):
            primitives.rounded_cuboid({"size": [1, 1, 1], "roundRadius": 0.5})

    def test_rounded_cylinder(self):
        """roundedCylinder keeps its height."""
        rounded = primitives.rounded_cylinder({"height": 4, "radius": 2, "roundRadius": 0.5,
                                               "segments": 16})
        assert_closed(rounded)
        assert measurements.measure_dimensions(rounded)[2] == pytest.approx(4, rel=0.01)

    def test_polyhedron_tetrahedron(self):
        """polyhedron builds faces from indices."""
        tet = primitives.polyhedron({
            "points": [[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1]],
            "faces": [[0, 2, 1], [0, 1, 3], [0, 3, 2], [1, 2, 3]],
        })
        assert_closed(tet)
        assert volume(tet) == pytest.approx(1 / 6)

    def test_polyhedron_bad_index(self):
        """Out-of-range face indices are rejected."""
        with pytest.raises(KernelError, match="out of range"):
            primitives.polyhedron({"points": [[0, 0, 0]], "faces": [[0, 1, 2]]})


class TestOutlines:
    """2D primitive constructors."""

    def test_rectangle_is_ccw(self):
        """rectangle points wind counter-clockwise."""
        rect = primitives.rectangle({"size": [4, 2]})
        assert isinstance(rect, Outline)
        assert len(rect.points) == 4
        assert rect.bounds() == ((-2, -1, 0), (2, 1, 0))

    def test_make_outline_reverses_clockwise(self):
        """Clockwise input is reversed and closing points dropped."""
        outline = make_outline([(0, 0), (0, 1), (1, 1), (1, 0), (0, 0)])
        assert len(outline.points) == 4
        assert outline.points[0] == (1.0, 0.0)

    def test_circle_segments(self):
        """circle has one point per segment."""
        assert len(primitives.circle({"radius": 2, "segments": 12}).points) == 12

    def test_polygon_single_nested_path(self):
        """A single nested path is accepted."""
        outline = primitives.polygon({"points": [[[0, 0], [2, 0], [1, 1]]]})
        assert len(outline.points) == 3

    def test_polygon_holes_rejected(self):
        """Multiple paths are not supported."""
        with pytest.raises(KernelError, match="holes"):
            primitives.polygon({"points": [[[0, 0], [4, 0], [0, 4]], [[1, 1], [2, 1], [1, 2]]]})

    def test_polygon_too_few_points(self):
        """Fewer than three distinct points is rejected."""
        with pytest.raises(KernelError):
            primitives.polygon({"points": [[0, 0], [1, 1], [1, 1]]})

    @pytest.mark.parametrize("n", [3, 5, 12])
    def test_triangulate_convex(self, n):
        """A convex n-gon gives n - 2 triangles."""
        outline = primitives.circle({"segments": n})
        assert len(triangulate_outline(outline.points)) == n - 2

    def test_triangulate_concave(self):
        """An L-shape triangulates into 4 triangles."""
        points = [(0, 0), (2, 0), (2, 1), (1, 1), (1, 2), (0, 2)]
        assert len(triangulate_outline(points)) == 4


# =============================================================================
# Transforms
# =============================================================================

class TestTransforms:
    """Transform functions."""

    def test_translate(self):
        """translate pads short vectors with zeros."""
        box = transforms.translate([5], primitives.cube())
        assert measurements.measure_center(box) == pytest.approx([5, 0, 0])

    def test_translate_axis(self):
        """translateZ moves along Z only."""
        box = transforms.translate_z(3, primitives.cube())
        assert measurements.measure_center(box) == pytest.approx([0, 0, 3])

    def test_input_unchanged(self):
        """Transforms return new geometry."""
        box = primitives.cube()
        transforms.translate([1, 1, 1], box)
        assert measurements.measure_center(box) == pytest.approx([0, 0, 0])

    def test_rotate_z(self):
        """A quarter turn swaps X and Y extents."""
        box = transforms.rotate_z(math.pi / 2, primitives.cuboid({"size": [2, 4, 6]}))
        assert measurements.measure_dimensions(box) == pytest.approx([4, 2, 6])

    def test_scale(self):
        """scale multiplies the volume."""
        box = transforms.scale([2, 3, 1], primitives.cube())
        assert volume(box) == pytest.approx(48)

    def test_scale_zero_rejected(self):
        """Zero scale factors are rejected."""
        with pytest.raises(KernelError):
            transforms.scale_x(0, primitives.cube())

    def test_negative_scale_keeps_orientation(self):
        """A reflecting scale keeps the boundary wound outward."""
        box = transforms.scale([-1, 1, 1], primitives.cuboid({"center": [3, 0, 0]}))
        assert_closed(box)
        assert measurements.measure_center(box) == pytest.approx([-3, 0, 0])

    def test_mirror(self):
        """mirror reflects across a plane through the origin."""
        box = transforms.mirror({"normal": [1, 0, 0]}, primitives.cuboid({"center": [3, 0, 0]}))
        assert_closed(box)
        assert measurements.measure_center(box)[0] == pytest.approx(-3)

    def test_mirror_axis(self):
        """mirrorZ flips Z."""
        box = transforms.mirror_z(primitives.cuboid({"center": [0, 0, 2]}))
        assert measurements.measure_center(box)[2] == pytest.approx(-2)

    def test_center(self):
        """center moves the bounding box centre."""
        box = primitives.cuboid({"center": [5, 5, 5]})
        moved = transforms.center({"axes": [True, False, True]}, box)
        assert measurements.measure_center(moved) == pytest.approx([0, 5, 0])

    def test_multiple_objects_return_list(self):
        """Several inputs give an array of results."""
        moved = transforms.translate([1, 0, 0], primitives.cube(), [primitives.sphere({"segments": 8})])
        assert isinstance(moved, list)
        assert len(moved) == 2

    def test_outline_transform(self):
        """Outlines stay 2D and counter-clockwise."""
        rect = transforms.mirror_x(primitives.rectangle({"center": [3, 0]}))
        assert isinstance(rect, Outline)
        assert rect.bounds()[0][0] == pytest.approx(-4)

    def test_non_geometry_rejected(self):
        """Non-geometry arguments are rejected."""
        with pytest.raises(KernelError, match="expected geometry"):
            transforms.translate([1, 0, 0], 42)


# =============================================================================
# Extrusions
# =============================================================================

class TestExtrusions:
    """Linear and rotational extrusion."""

    def test_extrude_linear(self):
        """extrudeLinear multiplies area by height."""
        solid = extrusions.extrude_linear({"height": 5}, primitives.rectangle({"size": [2, 3]}))
        assert_closed(solid)
        assert volume(solid) == pytest.approx(30)
        assert solid.bounds()[0][2] == 0

    def test_extrude_concave(self):
        """Concave outlines extrude to closed solids."""
        outline = primitives.polygon({"points": [[0, 0], [2, 0], [2, 1], [1, 1], [1, 2], [0, 2]]})
        solid = extrusions.extrude_linear({"height": 1}, outline)
        assert_closed(solid)
        assert volume(solid) == pytest.approx(3)

    def test_twisted_extrusion(self):
        """A twisted extrusion is still closed."""
        solid = extrusions.extrude_linear({"height": 4, "twistAngle": math.pi / 2, "twistSteps": 8},
                                          primitives.square({"size": 2}))
        assert_closed(solid)

    def test_extrude_solid_rejected(self):
        """Only outlines can be extruded."""
        with pytest.raises(KernelError, match="2D outline"):
            extrusions.extrude_linear({"height": 1}, primitives.cube())

    def test_extrude_rotate_full(self):
        """A full revolution of a rectangle is a tube."""
        profile = primitives.rectangle({"size": [1, 2], "center": [2.5, 0]})
        tube = extrusions.extrude_rotate({"segments": 64}, profile)
        assert_closed(tube)
        exact = math.pi * (3 ** 2 - 2 ** 2) * 2
        assert volume(tube) == pytest.approx(exact, rel=0.01)

    def test_extrude_rotate_partial(self):
        """A half revolution is closed with end caps."""
        profile = primitives.rectangle({"size": [1, 1], "center": [2, 0]})
        half = extrusions.extrude_rotate({"segments": 32, "angle": math.pi}, profile)
        assert_closed(half)

    def test_extrude_rotate_negative_angle(self):
        """A negative angle sweeps the other way."""
        profile = primitives.rectangle({"size": [1, 1], "center": [2, 0]})
        part = extrusions.extrude_rotate({"segments": 16, "angle": -math.pi / 2}, profile)
        assert_closed(part)
        assert measurements.measure_center(part)[1] < 0

    def test_extrude_rotate_crossing_axis(self):
        """Profiles with x < 0 are rejected."""
        with pytest.raises(KernelError, match="axis"):
            extrusions.extrude_rotate({}, primitives.rectangle({"size": [2, 2]}))


# =============================================================================
# Hulls and measurements
# =============================================================================

class TestHulls:
    """Convex hulls."""

    def test_hull_of_two_boxes(self):
        """The hull of two separated cubes fills the gap."""
        a = primitives.cube()
        b = primitives.cuboid({"center": [4, 0, 0]})
        shell = hulls.hull(a, b)
        assert_closed(shell)
        assert volume(shell) == pytest.approx(24)

    def test_hull_2d(self):
        """Outlines hull to an outline."""
        shape = hulls.hull(primitives.circle({"segments": 8}),
                           primitives.circle({"segments": 8, "center": [5, 0]}))
        assert isinstance(shape, Outline)

    def test_hull_mixed_dimensions(self):
        """2D and 3D cannot be mixed."""
        with pytest.raises(KernelError, match="mix"):
            hulls.hull(primitives.cube(), primitives.square())

    def test_hull_chain(self):
        """hullChain needs at least two inputs."""
        with pytest.raises(KernelError):
            hulls.hull_chain(primitives.cube())


class TestMeasurements:
    """Measurement and colour functions."""

    def test_measure_center_and_dimensions(self):
        """Centre and dimensions come from the bounding box."""
        box = primitives.cuboid({"size": [2, 4, 6], "center": [1, 2, 3]})
        assert measurements.measure_center(box) == pytest.approx([1, 2, 3])
        assert measurements.measure_dimensions(box) == pytest.approx([2, 4, 6])

    def test_volume_of_empty(self):
        """Empty solids have no volume."""
        assert volume(Solid(())) == 0

    def test_colorize_passes_through(self):
        """colorize returns the same geometry."""
        box = primitives.cube()
        assert measurements.colorize([1, 0, 0], box) is box

    def test_colorize_validates_color(self):
        """Colours need 3 or 4 numeric components."""
        with pytest.raises(KernelError):
            measurements.colorize([1, 0], primitives.cube())


# =============================================================================
# Booleans
# =============================================================================

class TestBooleans:
    """Boolean operations on the manifold engine."""

    @pytest.fixture(autouse=True)
    def _engine(self):
        pytest.importorskip("manifold3d")

    def test_union(self):
        """Overlapping cubes merge."""
        from morphos.kernel import booleans
        result = booleans.union(primitives.cube(), primitives.cuboid({"center": [1, 0, 0]}))
        assert_closed(result)
        assert volume(result) == pytest.approx(12)

    def test_subtract(self):
        """A hole is cut from the base."""
        from morphos.kernel import booleans
        result = booleans.subtract(primitives.cube({"size": 2}), primitives.cube({"size": 1}))
        assert volume(result) == pytest.approx(7)

    def test_intersect(self):
        """Only the common volume remains."""
        from morphos.kernel import booleans
        result = booleans.intersect(primitives.cube(), primitives.cuboid({"center": [1, 0, 0]}))
        assert volume(result) == pytest.approx(4)

    def test_empty_inputs(self):
        """Empty solids are skipped or short-circuit."""
        from morphos.kernel import booleans
        box = primitives.cube()
        assert booleans.union(Solid(()), box) is box
        assert booleans.intersect(Solid(()), box).is_empty

    def test_open_input_rejected(self):
        """A solid that does not enclose a volume cannot be combined."""
        from morphos.kernel import booleans
        sheet = primitives.polyhedron({
            "points": [[0, 0, 20], [5, 0, 20], [0, 5, 20]],
            "faces": [[0, 1, 2]],
        })
        for operation in (booleans.union, booleans.subtract, booleans.intersect):
            with pytest.raises(KernelError, match="not a closed volume"):
                operation(primitives.cube(), sheet)

    def test_hull_chain_union(self):
        """A 3D chain is the union of pairwise hulls."""
        chain = hulls.hull_chain(
            primitives.cube(),
            primitives.cuboid({"center": [4, 0, 0]}),
            primitives.cuboid({"center": [4, 4, 0]}),
        )
        assert volume(chain) == pytest.approx(24 + 24 - 8)

    def test_outline_rejected(self):
        """2D outlines cannot be combined."""
        from morphos.kernel import booleans
        with pytest.raises(KernelError, match="extrude"):
            booleans.union(primitives.square(), primitives.cube())


# =============================================================================
# Capability table
# =============================================================================

class TestCapabilities:
    """The names visible to programs."""

    def test_groups_present(self):
        """Every JSCAD group is exposed."""
        caps = default_capabilities()
        for group in GROUPS:
            assert group in caps
        assert "require" in caps
        assert "Math" in caps

    def test_default_is_cached(self):
        """The default set is built once."""
        assert default_capabilities() is default_capabilities()

    def test_entries_read_only(self):
        """The capability table cannot be modified."""
        caps = build_capabilities()
        with pytest.raises(TypeError):
            caps.entries["eval"] = None

    def test_custom_groups(self):
        """A restricted table exposes only the given groups."""
        caps = build_capabilities({"primitives": GROUPS["primitives"]})
        assert "primitives" in caps
        assert "booleans" not in caps
        modeling = caps["require"].implementation(MODULE_NAME)
        assert "booleans" not in modeling
