"""Tests for pdfcalc.structure adapters and the adapter factory."""

import numpy as np
import pytest
from pymatgen.core import Lattice as PmgLattice
from pymatgen.core import Molecule, Structure
from pymatgen.core.operations import SymmOp

from pdfcalc.lattice import Lattice
from pdfcalc.pairquantity import PairCounter
from pdfcalc.structure import (
    AtomicStructureAdapter,
    CrystalStructureAdapter,
    MoleculeAdapter,
    PeriodicStructureAdapter,
    StructureAdapter,
    create_adapter,
)


class TestAtomicStructureAdapter:
    """Tests for the bare-array aperiodic adapter."""

    def test_site_queries(self, dimer):
        assert dimer.count_sites() == 2
        np.testing.assert_allclose(dimer.site_cartesian_position(1), [0, 0, 2])
        assert dimer.site_occupancy(0) == 1.0
        assert dimer.site_anisotropy(0) is False
        assert dimer.site_atom_type(1) == "O"
        assert dimer.site_multiplicity(0) == 1.0
        np.testing.assert_allclose(dimer.site_cartesian_uij(0), 0.005 * np.eye(3))
        assert dimer.site_uiso(0) == pytest.approx(0.005)

    def test_number_density_is_zero(self, dimer):
        assert dimer.number_density() == 0.0
        assert dimer.lattice is None

    def test_total_occupancy(self):
        adapter = AtomicStructureAdapter(
            [[0, 0, 0], [1, 0, 0]], ["Na", "Cl"], occupancies=[0.5, 1.0]
        )
        assert adapter.total_occupancy() == pytest.approx(1.5)

    def test_index_out_of_range(self, dimer):
        with pytest.raises(IndexError):
            dimer.site_cartesian_position(2)
        with pytest.raises(IndexError):
            dimer.site_atom_type(-1)

    def test_arrays_are_copied_and_read_only(self):
        positions = np.zeros((1, 3))
        adapter = AtomicStructureAdapter(positions, ["C"])
        positions[0, 0] = 1.0
        assert adapter.site_cartesian_position(0)[0] == 0.0
        with pytest.raises(ValueError):
            adapter.positions[0, 0] = 2.0

    def test_anisotropic_site_without_tensor_raises(self):
        with pytest.raises(ValueError, match="no displacement tensor"):
            AtomicStructureAdapter([[0, 0, 0]], ["C"], anisotropy=[True])

    def test_non_symmetric_tensor_raises(self):
        u = np.array([[0.01, 0.002, 0], [0, 0.01, 0], [0, 0, 0.01]])
        with pytest.raises(ValueError, match="not symmetric"):
            AtomicStructureAdapter([[0, 0, 0]], ["C"], uij=[u])

    def test_non_psd_tensor_warns(self):
        u = np.diag([0.01, -0.01, 0.01])
        with pytest.warns(RuntimeWarning, match="positive semidefinite"):
            adapter = AtomicStructureAdapter([[0, 0, 0]], ["C"], uij=[u])
        assert adapter.site_anisotropy(0) is True

    def test_negative_uiso_raises(self):
        with pytest.raises(ValueError):
            AtomicStructureAdapter([[0, 0, 0]], ["C"], uiso=-0.01)

    def test_occupancy_out_of_range_raises(self):
        with pytest.raises(ValueError, match="Occupancies"):
            AtomicStructureAdapter([[0, 0, 0]], ["C"], occupancies=[1.5])

    def test_incommensurate_types_raise(self):
        with pytest.raises(ValueError, match="incommensurate"):
            AtomicStructureAdapter([[0, 0, 0]], ["C", "O"])

    def test_mixed_isotropic_and_anisotropic(self):
        u = np.diag([0.01, 0.02, 0.03])
        adapter = AtomicStructureAdapter(
            [[0, 0, 0], [1, 0, 0]], ["C", "O"], uiso=0.004, uij=[None, u]
        )
        assert adapter.site_anisotropy(0) is False
        assert adapter.site_anisotropy(1) is True
        np.testing.assert_allclose(adapter.site_cartesian_uij(0), 0.004 * np.eye(3))
        np.testing.assert_allclose(adapter.site_cartesian_uij(1), u)


class TestPeriodicStructureAdapter:
    """Tests for the lattice based adapter."""

    def test_number_density(self, simple_cubic):
        assert simple_cubic.number_density() == pytest.approx(1 / 64)

    def test_lattice(self, simple_cubic, cubic_lattice):
        assert simple_cubic.lattice == cubic_lattice

    def test_accepts_cell_matrix(self):
        adapter = PeriodicStructureAdapter(3 * np.eye(3), [[0, 0, 0]], ["Cu"])
        assert isinstance(adapter.lattice, Lattice)
        assert adapter.lattice.volume == pytest.approx(27.0)

    def test_from_pymatgen_keeps_borrowed_source(self):
        stru = Structure(PmgLattice.cubic(4.0), ["Na", "Cl"], [[0, 0, 0], [0.5, 0.5, 0.5]])
        stru.add_site_property("uiso", [0.01, 0.02])
        adapter = PeriodicStructureAdapter.from_pymatgen(stru)
        assert adapter.source is stru
        assert adapter.count_sites() == 2
        assert adapter.site_uiso(1) == pytest.approx(0.02)
        np.testing.assert_allclose(adapter.site_cartesian_position(1), [2, 2, 2])

    def test_source_mutation_is_not_observed(self):
        stru = Structure(PmgLattice.cubic(4.0), ["Na"], [[0, 0, 0]])
        adapter = PeriodicStructureAdapter.from_pymatgen(stru)
        stru.translate_sites([0], [0.25, 0, 0])
        np.testing.assert_allclose(adapter.site_cartesian_position(0), [0, 0, 0])

    def test_disordered_site_is_split(self):
        stru = Structure(PmgLattice.cubic(4.0), [{"Na": 0.5, "K": 0.5}], [[0, 0, 0]])
        adapter = PeriodicStructureAdapter.from_pymatgen(stru)
        assert adapter.count_sites() == 2
        assert sorted(adapter.site_atom_type(i) for i in range(2)) == ["K", "Na"]
        assert adapter.total_occupancy() == pytest.approx(1.0)

    def test_crystal_frame_uij_is_converted(self):
        stru = Structure(PmgLattice.orthorhombic(3.0, 4.0, 5.0), ["Ti"], [[0, 0, 0]])
        u = np.diag([0.01, 0.02, 0.03])
        stru.add_site_property("uij", [u])
        adapter = PeriodicStructureAdapter.from_pymatgen(stru)
        assert adapter.site_anisotropy(0) is True
        np.testing.assert_allclose(adapter.site_cartesian_uij(0), u, atol=1e-12)

    def test_default_uiso(self):
        stru = Structure(PmgLattice.cubic(4.0), ["Na"], [[0, 0, 0]])
        adapter = PeriodicStructureAdapter.from_pymatgen(stru, default_uiso=0.003)
        assert adapter.site_uiso(0) == pytest.approx(0.003)


class TestCrystalStructureAdapter:
    """Tests for the symmetry-expanded adapter."""

    def test_multiplicity(self, bcc_crystal):
        assert bcc_crystal.count_sites() == 1
        assert bcc_crystal.site_multiplicity(0) == 2.0
        assert bcc_crystal.count_unit_cell_sites() == 2
        assert bcc_crystal.total_occupancy() == pytest.approx(2.0)
        assert bcc_crystal.number_density() == pytest.approx(2 / 64)

    def test_duplicate_images_are_removed(self, cubic_lattice):
        ops = [
            SymmOp.from_rotation_and_translation(np.eye(3), [0, 0, 0]),
            SymmOp.from_rotation_and_translation(-np.eye(3), [0, 0, 0]),
        ]
        at_origin = CrystalStructureAdapter(cubic_lattice, [[0, 0, 0]], ["Fe"], ops)
        general = CrystalStructureAdapter(cubic_lattice, [[0.1, 0.2, 0.3]], ["Fe"], ops)
        assert at_origin.site_multiplicity(0) == 1.0
        assert general.site_multiplicity(0) == 2.0

    def test_images_are_in_unit_cell(self, bcc_crystal):
        positions, _ = bcc_crystal.symmetry_images(0)
        np.testing.assert_allclose(positions, [[0, 0, 0], [2, 2, 2]])

    def test_uij_is_rotated(self, cubic_lattice):
        rot = np.array([[0, -1, 0], [1, 0, 0], [0, 0, 1]])
        ops = [
            SymmOp.from_rotation_and_translation(np.eye(3), [0, 0, 0]),
            SymmOp.from_rotation_and_translation(rot, [0, 0, 0]),
        ]
        u = np.diag([0.01, 0.02, 0.03])
        adapter = CrystalStructureAdapter(
            cubic_lattice, [[0.1, 0.2, 0.3]], ["Fe"], ops, uij=[u]
        )
        positions, tensors = adapter.symmetry_images(0)
        np.testing.assert_allclose(positions[1], [3.2, 0.4, 1.2])
        np.testing.assert_allclose(tensors[0], u, atol=1e-15)
        np.testing.assert_allclose(tensors[1], np.diag([0.02, 0.01, 0.03]), atol=1e-15)

    def test_affine_matrices_are_accepted(self, cubic_lattice):
        ops = [np.eye(4)]
        adapter = CrystalStructureAdapter(cubic_lattice, [[0, 0, 0]], ["Fe"], ops)
        assert adapter.site_multiplicity(0) == 1.0

    def test_no_symmops_raises(self, cubic_lattice):
        with pytest.raises(ValueError, match="symmetry operation"):
            CrystalStructureAdapter(cubic_lattice, [[0, 0, 0]], ["Fe"], [])

    def test_custom_pq_config_sets_full_sum(self, bcc_crystal):
        pq = PairCounter(rmax=3.0)
        assert pq.use_full_sum is False
        bcc_crystal.custom_pq_config(pq)
        assert pq.use_full_sum is True

    def test_from_pymatgen(self, bcc_symmops):
        stru = Structure(PmgLattice.cubic(4.0), ["Fe"], [[0, 0, 0]])
        adapter = CrystalStructureAdapter.from_pymatgen(stru, bcc_symmops, default_uiso=0.004)
        assert adapter.site_multiplicity(0) == 2.0
        assert adapter.site_uiso(0) == pytest.approx(0.004)
        assert adapter.source is stru


class TestMoleculeAdapter:
    """Tests for the molecule adapter."""

    def test_from_pymatgen(self):
        mol = Molecule(["C", "O"], [[0, 0, 0], [0, 0, 1.13]])
        mol.add_site_property("uiso", [0.01, 0.02])
        adapter = MoleculeAdapter.from_pymatgen(mol)
        assert adapter.count_sites() == 2
        assert adapter.number_density() == 0.0
        assert adapter.site_uiso(1) == pytest.approx(0.02)
        assert adapter.source is mol


class TestCreateAdapter:
    """Tests for create_adapter()."""

    def test_adapter_passes_through(self, dimer):
        assert create_adapter(dimer) is dimer

    def test_pymatgen_structure(self):
        stru = Structure(PmgLattice.cubic(4.0), ["Na"], [[0, 0, 0]])
        adapter = create_adapter(stru)
        assert isinstance(adapter, PeriodicStructureAdapter)

    def test_pymatgen_molecule(self):
        mol = Molecule(["C", "O"], [[0, 0, 0], [0, 0, 1.13]])
        adapter = create_adapter(mol)
        assert isinstance(adapter, MoleculeAdapter)

    def test_periodic_ase_atoms(self):
        from ase import Atoms
        atoms = Atoms("Cu", positions=[[0, 0, 0]], cell=3.6 * np.eye(3), pbc=True)
        adapter = create_adapter(atoms)
        assert isinstance(adapter, PeriodicStructureAdapter)
        assert adapter.source is atoms
        assert adapter.lattice.volume == pytest.approx(3.6 ** 3)

    def test_aperiodic_ase_atoms(self):
        from ase import Atoms
        atoms = Atoms("H2", positions=[[0, 0, 0], [0, 0, 0.74]])
        adapter = create_adapter(atoms)
        assert isinstance(adapter, MoleculeAdapter)
        assert adapter.count_sites() == 2
        assert adapter.source is atoms

    def test_ase_uiso_array(self):
        from ase import Atoms
        atoms = Atoms("Cu", positions=[[0, 0, 0]], cell=3.6 * np.eye(3), pbc=True)
        atoms.set_array("uiso", np.array([0.007]))
        adapter = create_adapter(atoms)
        assert adapter.site_uiso(0) == pytest.approx(0.007)

    def test_unsupported_type_raises(self):
        with pytest.raises(TypeError, match="Cannot create a structure adapter"):
            create_adapter("NaCl")

    def test_returns_structure_adapter(self, simple_cubic):
        assert isinstance(create_adapter(simple_cubic), StructureAdapter)


class TestPdffitParameters:
    """PDFfit-style calculation parameters on adapters."""

    def test_default_is_empty(self, dimer):
        assert dimer.pdffit == {}

    def test_values_are_copied_as_floats(self):
        params = {"scale": 2, "delta1": 0.5}
        adapter = AtomicStructureAdapter([[0, 0, 0]], ["C"], pdffit=params)
        params["scale"] = 7.0
        assert adapter.pdffit == {"scale": 2.0, "delta1": 0.5}
        adapter.pdffit["qdamp"] = 0.1
        assert "qdamp" not in adapter.pdffit

    def test_unknown_name_raises(self):
        with pytest.raises(ValueError, match="Unknown PDFfit parameters"):
            AtomicStructureAdapter([[0, 0, 0]], ["C"], pdffit={"sratio": 1.0})

    def test_periodic_from_pymatgen_properties(self):
        stru = Structure(PmgLattice.cubic(4.0), ["Ni"], [[0, 0, 0]])
        stru.properties["pdffit"] = {"scale": 0.8, "stepcut": 12.0}
        adapter = PeriodicStructureAdapter.from_pymatgen(stru)
        assert adapter.pdffit == {"scale": 0.8, "stepcut": 12.0}

    def test_molecule_from_pymatgen_properties(self):
        mol = Molecule(["C", "O"], [[0, 0, 0], [0, 0, 1.13]])
        mol.properties["pdffit"] = {"spdiameter": 10.0}
        assert MoleculeAdapter.from_pymatgen(mol).pdffit == {"spdiameter": 10.0}

    def test_ase_info(self):
        from ase import Atoms
        atoms = Atoms("Cu", positions=[[0, 0, 0]], cell=3.6 * np.eye(3), pbc=True)
        atoms.info["pdffit"] = {"qdamp": 0.04}
        assert create_adapter(atoms).pdffit == {"qdamp": 0.04}

    def test_crystal_keeps_full_sum_with_parameters(self, cubic_lattice, bcc_symmops):
        from pdfcalc import PDFCalculator
        crystal = CrystalStructureAdapter(
            cubic_lattice, [[0, 0, 0]], ["Fe"], bcc_symmops, uiso=0.005,
            pdffit={"scale": 0.25},
        )
        pc = PDFCalculator(rmax=5.0)
        crystal.custom_pq_config(pc)
        assert pc.use_full_sum is True
        assert pc.get_envelope("scale").scale == 0.25
