"""skybake.

skybake provisions the source server of an image build on an OpenStack
compute cloud: it launches a server from an image or a pre-created boot
volume, fails over across availability zones, waits for the server to become
ACTIVE and terminates it once the build is done.
"""
import os
import re
import runpy

import setuptools

ROOT_DIR = os.path.dirname(__file__)
DEPENDENCIES_FILE_PATH = os.path.join(ROOT_DIR, 'skybake', 'setup_files',
                                      'dependencies.py')
INIT_FILE_PATH = os.path.join(ROOT_DIR, 'skybake', '__init__.py')

# setuptools does not include the script dir on the search path, so we can't
# just do `import dependencies`. Instead, use runpy to manually load it. Note:
# dependencies here is a dict, not a module, so we access it by subscripting.
dependencies = runpy.run_path(DEPENDENCIES_FILE_PATH)


def find_version():
    with open(INIT_FILE_PATH, 'r', encoding='utf-8') as fp:
        version_match = re.search(r'^__version__ = [\'"]([^\'"]*)[\'"]',
                                  fp.read(), re.M)
        if version_match:
            return version_match.group(1)
        raise RuntimeError('Unable to find version string.')


setuptools.setup(
    name='skybake',
    version=find_version(),
    packages=setuptools.find_packages(include=['skybake', 'skybake.*']),
    description='Source server provisioning for image builds.',
    long_description=__doc__,
    python_requires='>=3.8',
    install_requires=dependencies['install_requires'],
    extras_require=dependencies['extras_require'],
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
        'Topic :: System :: Systems Administration',
    ],
)
