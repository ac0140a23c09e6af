"""Protobuf schemas for native (.dexreader) and Mihon (.tachibk) backups.

Both schemas are declared as plain field tables and compiled into message
classes when this module is imported, so no protoc step is needed. The
same tables render the .proto text written by the ``schema`` command.

Field numbers are part of the file format: never renumber or reuse one,
only append new optional fields.
"""

import logging

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

logger = logging.getLogger(__name__)

_Field = descriptor_pb2.FieldDescriptorProto

SCALAR_TYPES = {
    'string': _Field.TYPE_STRING,
    'bool': _Field.TYPE_BOOL,
    'int32': _Field.TYPE_INT32,
    'int64': _Field.TYPE_INT64,
    'uint32': _Field.TYPE_UINT32,
    'float': _Field.TYPE_FLOAT,
}
LABELS = {
    'optional': _Field.LABEL_OPTIONAL,
    'required': _Field.LABEL_REQUIRED,
    'repeated': _Field.LABEL_REPEATED,
}

# (label, type, name, number). A 'map' label means map<string, type>.
NATIVE_SCHEMA = {
    'Backup': [
        ('required', 'uint32', 'schemaVersion', 1),
        ('required', 'int64', 'exportedAt', 2),
        ('required', 'string', 'appVersion', 3),
        ('required', 'Library', 'library', 4),
        ('optional', 'Collections', 'collections', 5),
        ('optional', 'Progress', 'progress', 6),
        ('optional', 'ReaderSettings', 'readerSettings', 7),
        ('optional', 'uint32', 'schemaMinorVersion', 8),
    ],
    'Library': [
        ('repeated', 'Manga', 'mangaList', 1),
        ('repeated', 'Chapter', 'chapterList', 2),
    ],
    'Manga': [
        ('required', 'string', 'mangaId', 1),
        ('required', 'string', 'title', 2),
        ('optional', 'string', 'description', 3),
        ('optional', 'string', 'status', 4),
        ('optional', 'string', 'coverUrl', 5),
        ('optional', 'int32', 'year', 6),
        ('optional', 'bool', 'isFavourite', 7),
        ('optional', 'int64', 'addedAt', 8),
        ('optional', 'int64', 'updatedAt', 9),
        ('optional', 'int64', 'lastAccessedAt', 10),
        ('map', 'string', 'externalLinks', 11),
        ('repeated', 'string', 'tags', 12),
        ('repeated', 'string', 'authors', 13),
        ('repeated', 'string', 'artists', 14),
        ('map', 'string', 'alternativeTitles', 15),
        ('optional', 'string', 'lastVolume', 16),
        ('optional', 'string', 'lastChapter', 17),
        ('optional', 'string', 'lastKnownChapterId', 18),
        ('optional', 'string', 'lastKnownChapterNumber', 19),
        ('optional', 'int64', 'lastCheckForUpdates', 20),
        ('optional', 'bool', 'hasNewChapters', 21),
    ],
    'Chapter': [
        ('required', 'string', 'chapterId', 1),
        ('required', 'string', 'mangaId', 2),
        ('optional', 'string', 'title', 3),
        ('optional', 'string', 'chapterNumber', 4),
        ('optional', 'string', 'volume', 5),
        ('optional', 'string', 'language', 6),
        ('optional', 'int64', 'publishAt', 7),
        ('optional', 'int64', 'createdAt', 8),
        ('optional', 'int64', 'updatedAt', 9),
        ('optional', 'string', 'scanlationGroup', 10),
        ('optional', 'string', 'externalUrl', 11),
    ],
    'Collections': [
        ('repeated', 'Collection', 'collectionList', 1),
        ('repeated', 'CollectionItem', 'collectionItems', 2),
    ],
    'Collection': [
        ('required', 'int64', 'id', 1),
        ('required', 'string', 'name', 2),
        ('optional', 'string', 'description', 3),
        ('optional', 'int64', 'createdAt', 4),
        ('optional', 'int64', 'updatedAt', 5),
    ],
    'CollectionItem': [
        ('required', 'int64', 'collectionId', 1),
        ('required', 'string', 'mangaId', 2),
        ('optional', 'int64', 'addedAt', 3),
        ('optional', 'int32', 'position', 4),
    ],
    'Progress': [
        ('repeated', 'MangaProgress', 'mangaProgress', 1),
        ('repeated', 'ChapterProgress', 'chapterProgress', 2),
    ],
    'MangaProgress': [
        ('required', 'string', 'mangaId', 1),
        ('optional', 'string', 'lastChapterId', 2),
        ('optional', 'int64', 'firstReadAt', 3),
        ('optional', 'int64', 'lastReadAt', 4),
    ],
    'ChapterProgress': [
        ('required', 'string', 'mangaId', 1),
        ('required', 'string', 'chapterId', 2),
        ('optional', 'int32', 'currentPage', 3),
        ('optional', 'bool', 'completed', 4),
        ('optional', 'int64', 'lastReadAt', 5),
    ],
    'ReaderSettings': [
        ('repeated', 'MangaReaderOverride', 'overrides', 1),
    ],
    'MangaReaderOverride': [
        ('required', 'string', 'mangaId', 1),
        ('required', 'string', 'readingMode', 2),
        ('optional', 'DoublePageMode', 'doublePageMode', 3),
        ('optional', 'int64', 'createdAt', 4),
        ('optional', 'int64', 'updatedAt', 5),
    ],
    'DoublePageMode': [
        ('optional', 'bool', 'skipCoverPages', 1),
        ('optional', 'bool', 'readRightToLeft', 2),
    ],
}

# Subset of mihonapp/mihon's backup models. Numbers match the app; anything
# not listed here (tracking, preferences, ...) survives as unknown fields.
MIHON_SCHEMA = {
    'Backup': [
        ('repeated', 'BackupManga', 'backupManga', 1),
        ('repeated', 'BackupCategory', 'backupCategories', 2),
        ('repeated', 'BackupSource', 'backupSources', 101),
    ],
    'BackupManga': [
        ('required', 'int64', 'source', 1),
        ('required', 'string', 'url', 2),
        ('optional', 'string', 'title', 3),
        ('optional', 'string', 'artist', 4),
        ('optional', 'string', 'author', 5),
        ('optional', 'string', 'description', 6),
        ('repeated', 'string', 'genre', 7),
        ('optional', 'int32', 'status', 8),
        ('optional', 'string', 'thumbnailUrl', 9),
        ('optional', 'int64', 'dateAdded', 13),
        ('optional', 'int32', 'viewer', 14),
        ('repeated', 'BackupChapter', 'chapters', 16),
        ('repeated', 'int64', 'categories', 17),
        ('optional', 'bool', 'favorite', 100),
        ('optional', 'int32', 'chapterFlags', 101),
        ('optional', 'int32', 'viewer_flags', 103),
        ('repeated', 'BackupHistory', 'history', 104),
        ('optional', 'int64', 'lastModifiedAt', 106),
        ('optional', 'int64', 'favoriteModifiedAt', 107),
    ],
    'BackupChapter': [
        ('required', 'string', 'url', 1),
        ('optional', 'string', 'name', 2),
        ('optional', 'string', 'scanlator', 3),
        ('optional', 'bool', 'read', 4),
        ('optional', 'bool', 'bookmark', 5),
        ('optional', 'int64', 'lastPageRead', 6),
        ('optional', 'int64', 'dateFetch', 7),
        ('optional', 'int64', 'dateUpload', 8),
        ('optional', 'float', 'chapterNumber', 9),
        ('optional', 'int64', 'sourceOrder', 10),
        ('optional', 'int64', 'lastModifiedAt', 11),
    ],
    'BackupCategory': [
        ('required', 'string', 'name', 1),
        ('optional', 'int64', 'order', 2),
        ('optional', 'int64', 'id', 3),
        ('optional', 'int64', 'flags', 100),
    ],
    'BackupHistory': [
        ('required', 'string', 'url', 1),
        ('optional', 'int64', 'lastRead', 2),
        ('optional', 'int64', 'readDuration', 3),
    ],
    'BackupSource': [
        ('optional', 'string', 'name', 1),
        ('optional', 'int64', 'sourceId', 2),
    ],
}

SCHEMAS = {
    'native': ('dexreader', NATIVE_SCHEMA),
    'mihon': ('mihon', MIHON_SCHEMA),
}


def _map_entry_name(field_name):
    # protobuf requires the synthetic entry type to be named <CamelCaseField>Entry
    return field_name[0].upper() + field_name[1:] + 'Entry'


def build_file_descriptor(package, messages):
    """Build a FileDescriptorProto from a field table.

    Args:
        package: Protobuf package name
        messages: Mapping of message name to field tuples

    Returns:
        descriptor_pb2.FileDescriptorProto
    """
    file_proto = descriptor_pb2.FileDescriptorProto(
        name=f'{package}_backup.proto', package=package, syntax='proto2'
    )
    for message_name, fields in messages.items():
        message_proto = file_proto.message_type.add(name=message_name)
        for label, field_type, field_name, number in fields:
            field_proto = message_proto.field.add(name=field_name, number=number)
            if label == 'map':
                entry_name = _map_entry_name(field_name)
                entry = message_proto.nested_type.add(name=entry_name)
                entry.options.map_entry = True
                entry.field.add(name='key', number=1, label=_Field.LABEL_OPTIONAL, type=_Field.TYPE_STRING)
                entry.field.add(name='value', number=2, label=_Field.LABEL_OPTIONAL, type=SCALAR_TYPES[field_type])
                field_proto.label = _Field.LABEL_REPEATED
                field_proto.type = _Field.TYPE_MESSAGE
                field_proto.type_name = f'.{package}.{message_name}.{entry_name}'
                continue

            field_proto.label = LABELS[label]
            if field_type in SCALAR_TYPES:
                field_proto.type = SCALAR_TYPES[field_type]
            else:
                field_proto.type = _Field.TYPE_MESSAGE
                field_proto.type_name = f'.{package}.{field_type}'
    return file_proto


def compile_schema(package, messages):
    """Compile a field table into generated message classes.

    Returns:
        Dict of message name to message class
    """
    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(build_file_descriptor(package, messages).SerializeToString())
    logger.debug("Compiled %d message types for package %s", len(messages), package)
    return {
        name: message_factory.GetMessageClass(pool.FindMessageTypeByName(f'{package}.{name}'))
        for name in messages
    }


def render_proto(package, messages):
    """Render a field table as .proto source text."""
    lines = ['syntax = "proto2";', '', f'package {package};', '']
    for message_name, fields in messages.items():
        lines.append(f'message {message_name} {{')
        for label, field_type, field_name, number in fields:
            if label == 'map':
                lines.append(f'  map<string, {field_type}> {field_name} = {number};')
            else:
                lines.append(f'  {label} {field_type} {field_name} = {number};')
        lines.append('}')
        lines.append('')
    return '\n'.join(lines)


def write_proto(format_name, output_file=None):
    """Write the .proto definition of a backup format to disk.

    Args:
        format_name: 'native' or 'mihon'
        output_file: Destination path (default: schema-<format>.proto)

    Returns:
        Path of the written file
    """
    package, messages = SCHEMAS[format_name]
    output_file = output_file or f'schema-{format_name}.proto'
    logger.info("Writing %s schema to %s", format_name, output_file)
    with open(output_file, 'wt', encoding='utf-8') as f:
        f.write(render_proto(package, messages))
    return output_file


NATIVE_MESSAGES = compile_schema(*SCHEMAS['native'])
MIHON_MESSAGES = compile_schema(*SCHEMAS['mihon'])

NativeBackup = NATIVE_MESSAGES['Backup']
MihonBackup = MIHON_MESSAGES['Backup']
