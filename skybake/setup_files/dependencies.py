"""Dependencies for skybake.

This file is imported by setup.py, so:
- It may not be able to import other skybake modules, since sys.path may not
  be correct.
- It should not import any dependencies, as they may not be installed yet.
"""
from typing import Dict, List

install_requires = [
    'colorama',
    'jsonschema >= 4.0',
    # Cython 3.0 release breaks PyYAML 5.4.*
    # (https://github.com/yaml/pyyaml/issues/601)
    'pyyaml > 3.13, != 5.4.*',
]

extras_require: Dict[str, List[str]] = {
    'openstack': ['openstacksdk >= 1.0.0', 'keystoneauth1'],
    'test': ['pytest'],
}

extras_require['all'] = sorted(
    {dep for deps in extras_require.values() for dep in deps})
