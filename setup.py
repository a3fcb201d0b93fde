
import io
import re
import setuptools

with io.open('src/oamver/__init__.py', encoding='utf8') as fp:
  version = re.search(r'__version__\s*=\s*"(.*)"', fp.read()).group(1)

with io.open('README.md', encoding='utf8') as fp:
  long_description = fp.read()

requirements = [
  'cleo >=2.0.0,<3.0.0',
  'databind >=4.4.0,<5.0.0',
  'importlib-metadata >=4.0.0',
  'jinja2 >=3.0.0,<4.0.0',
  'PyYAML >=5.1.0,<7.0.0',
  'tomli >=2.0.0,<3.0.0',
  'typing-extensions >=4.0.0',
]
test_requirements = ['pytest >=7.0.0', 'GitPython >=3.1.0,<4.0.0']

setuptools.setup(
  name = 'oamver',
  version = version,
  author = 'oamver contributors',
  description = 'Derives container image versions and tags from Git and patches OAM application manifests.',
  long_description = long_description,
  long_description_content_type = 'text/markdown',
  license = 'MIT',
  packages = setuptools.find_packages('src', ['test', 'test.*', 'docs', 'docs.*']),
  package_dir = {'': 'src'},
  include_package_data = False,
  install_requires = requirements,
  extras_require = {'test': test_requirements},
  tests_require = test_requirements,
  python_requires = '>=3.9',
  data_files = [],
  entry_points = {
    'console_scripts': [
      'oamver = oamver.__main__:_entry_main',
    ],
  }
)
