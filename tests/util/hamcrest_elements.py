from hamcrest import *
import lxml.html


def fragment(markup):
    '''Parses an HTML fragment, returning a <div> holding its top-level elements.'''
    return lxml.html.fragment_fromstring(markup, create_parent = 'div')


def space():
    return described_as("␣", any_of(none(), matches_regexp(r'\s*')))


def is_element(tag, attrib, text, *children, tail = space()):
    attr_str = ''.join(f' {k}="{v}"' for k, v in attrib.items())
    description = f'<{tag}{attr_str}>{text or ""}{"..." if children else ""}</{tag}>'

    return described_as(
        description,
        all_of(
            has_properties(tag = tag, attrib = has_entries(attrib), text = text, tail = tail),
            contains_exactly(*children)))


def has_css_class(css_class):
    '''Matches an element whose class attribute includes the given class name.'''
    return described_as(
        f'element with class "{css_class}"',
        has_property('attrib', has_entry('class', matches_regexp(rf'(^|\s){css_class}(\s|$)'))))
