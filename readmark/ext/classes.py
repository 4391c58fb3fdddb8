'''
# Classes Extension

Adds CSS classes to output elements by tag name, so that a host application can theme the output
without resorting to element selectors. For instance:

    element_classes = {'h1': 'heading-1', 'table': 'markdown-table'}

An element's existing classes (e.g., from pymdownx.tasklist) are kept.
'''

from readmark.lib.progress import Progress
import markdown


NAME = 'readmark.classes'  # For error messages


class ClassesTreeprocessor(markdown.treeprocessors.Treeprocessor):
    def __init__(self, md, element_classes, progress):
        super().__init__(md)
        self.element_classes = element_classes
        self.progress = progress

    def run(self, root):
        for element in root.iter():
            css_class = self.element_classes.get(element.tag)
            if css_class:
                existing = element.get('class')
                element.set('class', f'{existing} {css_class}' if existing else css_class)
        return None


class ClassesExtension(markdown.Extension):
    def __init__(self, **kwargs):
        self.config = {
            'element_classes': [
                {},
                'A dictionary mapping element tag names to the CSS class(es) to give them.'
            ],
            'progress': [
                Progress(),
                'An object accepting progress messages.'
            ],
        }
        super().__init__(**kwargs)


    def extendMarkdown(self, md):
        element_classes = self.getConfig('element_classes')
        progress = self.getConfig('progress')

        if not isinstance(element_classes, dict):
            progress.error(NAME, msg = f'Invalid value "{element_classes}" for config option '
                                       '"element_classes"; expected a dict')
            return

        if element_classes:
            md.treeprocessors.register(
                ClassesTreeprocessor(md, element_classes, progress), 'readmark-classes', 5)


def makeExtension(**kwargs):
    return ClassesExtension(**kwargs)
