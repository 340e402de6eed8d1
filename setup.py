# coding: utf-8
#
# Copyright 2011 Yesudeep Mangalapilly <yesudeep@gmail.com>
# Copyright 2012 Google, Inc & contributors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import importlib.util
import os.path
from setuptools import setup, find_packages

SRC_DIR = 'src'
DEPTHWATCH_PKG_DIR = os.path.join(SRC_DIR, 'depthwatch')

# Load the module version
spec = importlib.util.spec_from_file_location(
    'version', os.path.join(DEPTHWATCH_PKG_DIR, 'version.py'))
version = importlib.util.module_from_spec(spec)
spec.loader.exec_module(version)

install_requires = [
    'argh',
    'PyYAML>=3.10',
]

extras_require = {
    'tests': ['pytest', 'pytest-timeout'],
}

with open('README.rst', encoding='utf-8') as f:
    readme = f.read()

setup(name="depthwatch",
      version=version.VERSION_STRING,
      description="Depth-bounded directory tree monitoring on inotify",
      long_description=readme,
      long_description_content_type="text/x-rst",
      license="Apache License 2.0",
      keywords=' '.join([
          'python',
          'filesystem',
          'monitoring',
          'monitor',
          'inotify',
          'recursive',
      ]),
      classifiers=[
          'Development Status :: 3 - Alpha',
          'Environment :: Console',
          'Intended Audience :: Developers',
          'Intended Audience :: System Administrators',
          'License :: OSI Approved :: Apache Software License',
          'Natural Language :: English',
          'Operating System :: POSIX :: Linux',
          'Programming Language :: Python',
          'Programming Language :: Python :: 3',
          'Programming Language :: Python :: 3 :: Only',
          'Programming Language :: Python :: 3.9',
          'Programming Language :: Python :: 3.10',
          'Programming Language :: Python :: 3.11',
          'Programming Language :: Python :: 3.12',
          'Topic :: System :: Monitoring',
          'Topic :: System :: Filesystems',
          'Topic :: Utilities',
      ],
      package_dir={'': SRC_DIR},
      packages=find_packages(SRC_DIR),
      include_package_data=True,
      install_requires=install_requires,
      extras_require=extras_require,
      entry_points={'console_scripts': [
          'depthwatch = depthwatch.watchmedo:main',
      ]},
      python_requires='>=3.9',
      zip_safe=False
)
